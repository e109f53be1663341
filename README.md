# gotenberg

A small application framework for a stateless PDF service. It brings the
pieces such a service is assembled from: a module system, typed command-line
flags, external commands run in their own process group, and a supervisor for
a long-running process.

## What is in the package

| Module | Contents |
| --- | --- |
| `gotenberg.modules` | `Module`, `ModuleDescriptor`, the interfaces `Provisioner`, `Validator`, `App`, `SystemLogger`; `register_module`, `get_module_descriptors`, `RegistrationError` |
| `gotenberg.context` | `Context`, which provisions, validates and caches modules, and `ModuleLoadError` |
| `gotenberg.flags` | `FlagSet`, `ParsedFlags`, `FlagError`, `parse_duration`, `parse_bytes` |
| `gotenberg.cancellation` | `CancelScope`, `Cancelled`, `DeadlineExceeded` |
| `gotenberg.cmd` | `Cmd`, `command`, `command_context`, `CommandError` |
| `gotenberg.supervisor` | `ProcessSupervisor`, the `Process` interface, `ProcessAlreadyRestartingError`, `MaximumQueueSizeExceededError` |
| `gotenberg.pdfengine` | the `PdfEngine` and `PdfEngineProvider` interfaces, `PdfFormats`, `PdfA`, and the errors engines raise |
| `gotenberg.metrics` | `Metric`, the `MetricsProvider` and `LoggerProvider` interfaces |
| `gotenberg.env` | `string_env`, `int_env`, `EnvironmentVariableError` |
| `gotenberg.filter` | `filter_deadline`, `FilteredError` |
| `gotenberg.sort` | `alphanumeric_sort`, `alphanumeric_less` |
| `gotenberg.fs` | `FileSystem`, `PathRename` |
| `gotenberg.gc` | `garbage_collect` |
| `gotenberg.app` | `main`, the `gotenberg` command |

## Installation

```
pip install .
```

## Writing a module

A module describes itself with a `ModuleDescriptor`: a unique ID, an optional
`FlagSet` and a factory `new` returning a fresh instance.

```python
from gotenberg.flags import FlagSet
from gotenberg.modules import Module, ModuleDescriptor, Provisioner, register_module


class Greeter(Module, Provisioner):
    def descriptor(self):
        flags = FlagSet("greeter")
        flags.add_string("greeter-name", "world", "Set the name to greet")
        return ModuleDescriptor(id="greeter", flag_set=flags, new=Greeter)

    def provision(self, ctx):
        self.name = ctx.parsed_flags().must_string("greeter-name")


register_module(Greeter())
```

`register_module` raises `RegistrationError` for an empty ID, a missing
factory, a factory returning `None`, or an ID already registered.

A `Context` hands out modules by interface. `ctx.modules(kind)` returns every
module that is an instance of `kind`, calling `provision` and then `validate`
the first time a module is loaded and reusing that instance afterwards;
`ctx.module(kind)` requires exactly one match. Failures raise `ModuleLoadError`.

```python
from gotenberg.pdfengine import PdfEngineProvider


def provision(self, ctx):
    provider = ctx.module(PdfEngineProvider)
    self.engine = provider.pdf_engine()
```

## Flags

`FlagSet` parses long flags (`--name=value` or `--name value`; `--name` alone
for booleans; `--` ends the flags). Flags are defined with `add_string`,
`add_string_slice` (comma-separated, repeatable), `add_bool`, `add_int`,
`add_int64`, `add_float64` and `add_duration` (`"300ms"`, `"1.5h"`, `"2h45m"`).
`ParsedFlags` reads them back with `must_string`, `must_bool`,
`must_duration`, `must_human_readable_bytes_string` (checks a size such as
`1MB` or `1GiB`), `must_regexp` and the others, each raising `FlagError` for an
undefined flag or one of another type. Every `must_deprecated_*` method returns
the deprecated flag's value when it was set explicitly, else the new flag's.

## Commands and process supervision

`command(logger, "echo", "hello")` and `command_context(scope, logger, ...)`
create a `Cmd` whose process runs in its own session, so `kill()` ends it and
all its children. `exec()` runs the command until it completes or its
`CancelScope` is done, kills the process group, and returns 0 or raises
`CommandError` whose `exit_code` is 10 without a scope, 131 if the process
could not start, 62 if the scope was done first, or the process's own code.
At debug level, the process's output is logged line by line.

`ProcessSupervisor` runs tasks one at a time against a `Process`: it starts
the process on the first task, restarts it when unhealthy or after
`max_req_limit` tasks, and refuses tasks with
`MaximumQueueSizeExceededError` when `max_queue_size` are already waiting.

```python
from gotenberg.cancellation import CancelScope
from gotenberg.supervisor import ProcessSupervisor

supervisor = ProcessSupervisor(logger, my_process, max_req_limit=100, max_queue_size=10)
result = supervisor.run(CancelScope(timeout=30), logger, lambda: do_work())
```

## Helpers

- `string_env(key)` / `int_env(key)` raise `EnvironmentVariableError` for a
  missing, empty or non-integer variable.
- `filter_deadline(allowed, denied, value, deadline)` raises `FilteredError`
  when `value` does not match `allowed` or matches `denied` (empty expressions
  are ignored), and `DeadlineExceeded` once the deadline has passed.
- `alphanumeric_sort(names)` puts names with a numeric prefix first, by that
  number, then the others in string order.
- `FileSystem` builds unique directories under a per-instance working
  directory in the system temporary directory; `mkdir_all()` creates one.
- `garbage_collect(root_path, include_substr)` removes the entries directly
  under `root_path` whose name contains, or whose path equals, one of the
  given strings.

## Running

```
gotenberg --gotenberg-graceful-shutdown-duration=30s
```

The command prints a banner, lists the registered modules, adds their flags,
starts every module that is an `App`, prints the messages of every
`SystemLogger`, and waits for SIGINT or SIGTERM. It then stops the
applications within the graceful shutdown duration (30 seconds by default);
a second SIGINT cancels the shutdown scope. It exits with 1 on a flag error,
a module that fails to load or start, or an application that fails to stop.

## What the package does not do

The package registers no modules of its own. It has no HTTP server, no PDF
engine and no document conversion: `PdfEngine`, `PdfEngineProvider`,
`MetricsProvider` and `LoggerProvider` are interfaces only. Run on its own,
the `gotenberg` command starts nothing and simply waits for a signal; modules
must be registered with `register_module` in the same process before
`gotenberg.app.main()` is called.

## Tests

```
pip install ".[test]"
pytest
```