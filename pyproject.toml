[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gotenberg"
version = "8.0.0"
description = "A module system, typed flags, process groups and a process supervisor for a stateless PDF service"
requires-python = ">=3.10"
keywords = ["pdf", "modules", "plugins", "flags", "process-supervisor", "framework"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "regex",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gotenberg = "gotenberg.app:main"

[tool.hatch.build.targets.wheel]
packages = ["gotenberg"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
