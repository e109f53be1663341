"""Isolated temporary working directories."""

from __future__ import annotations

import os
import tempfile
import uuid


class FileSystem:
    """Creates uniquely named directories under one working directory in the
    system's temporary directory."""

    def __init__(self) -> None:
        self._working_dir = str(uuid.uuid4())

    def working_dir(self) -> str:
        """Return the unique name of the working directory."""
        return self._working_dir

    def working_dir_path(self) -> str:
        """Return the full path of the working directory."""
        return f"{tempfile.gettempdir()}/{self._working_dir}"

    def new_dir_path(self) -> str:
        """Return a new unique directory path inside the working directory."""
        return f"{self.working_dir_path()}/{uuid.uuid4()}"

    def mkdir_all(self) -> str:
        """Create a new unique directory inside the working directory."""
        path = self.new_dir_path()
        try:
            os.makedirs(path, mode=0o755, exist_ok=True)
        except OSError as err:
            raise OSError(f"create directory {path}: {err}") from err
        return path


class PathRename:
    """Renames paths; subclass it to replace the default behaviour."""

    def rename(self, old_path: str, new_path: str) -> None:
        """Rename ``old_path`` to ``new_path``."""
        os.rename(old_path, new_path)