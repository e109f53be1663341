"""The application command: loads the registered modules and runs their apps."""

from __future__ import annotations

import signal
import sys
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Callable, Optional

from gotenberg.cancellation import CancelScope
from gotenberg.context import Context, ModuleLoadError
from gotenberg.flags import FlagError, FlagSet, ParsedFlags
from gotenberg.modules import App, SystemLogger, get_module_descriptors

VERSION = "snapshot"

_SHUTDOWN_FLAG = "gotenberg-graceful-shutdown-duration"
_DEFAULT_SHUTDOWN = timedelta(seconds=30)
_POLL_INTERVAL = 0.05

_BANNER = r"""
  _____     __           __               
 / ___/__  / /____ ___  / /  ___ _______ _
/ (_ / _ \/ __/ -_) _ \/ _ \/ -_) __/ _ '/
\___/\___/\__/\__/_//_/_.__/\__/_/  \_, / 
                                   /___/

A Docker-powered stateless API for PDF files.
Version: {version}
-------------------------------------------------------
"""


def _say(message: str) -> None:
    print(message, flush=True)


def _format_duration(duration: timedelta) -> str:
    micros = duration // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros == 0:
        return "0s"
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        whole, frac = divmod(micros, 1000)
        fraction = "." + f"{frac:03d}".rstrip("0") if frac else ""
        return f"{sign}{whole}{fraction}ms"

    seconds, frac = divmod(micros, 1_000_000)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    fraction = "." + f"{frac:06d}".rstrip("0") if frac else ""
    secs_text = f"{secs}{fraction}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{secs_text}"
    if minutes:
        return f"{sign}{minutes}m{secs_text}"
    return f"{sign}{secs_text}"


def _module_id(mod: Any) -> str:
    return mod.descriptor().id


class _SignalHandlers:
    """Installs signal handlers and restores the previous ones on exit."""

    def __init__(self) -> None:
        self._previous: dict[int, Any] = {}

    def install(self, signum: int, handler: Callable[[int, Any], None]) -> None:
        previous = signal.signal(signum, handler)
        self._previous.setdefault(signum, previous)

    def __enter__(self) -> _SignalHandlers:
        return self

    def __exit__(self, *exc: object) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)


def _start_app(app: Any, quit_event: threading.Event, failures: list[str]) -> None:
    mod_id = _module_id(app)
    try:
        app.start()
    except Exception as err:
        failures.append(mod_id)
        _say(f"[FATAL] starting {mod_id}: {err}")
        quit_event.set()
        return

    message = app.startup_message()
    if not message:
        _say(f"[SYSTEM] {mod_id}: application started")
        return
    _say(f"[SYSTEM] {mod_id}: {message}")


def _print_system_messages(logger: Any) -> None:
    mod_id = _module_id(logger)
    for message in logger.system_messages():
        _say(f"[SYSTEM] {mod_id}: {message}")


def _stop_app(app: Any, scope: CancelScope) -> None:
    mod_id = _module_id(app)
    try:
        app.stop(scope)
    except Exception as err:
        raise RuntimeError(f"stopping {mod_id}: {err}") from err
    _say(f"[SYSTEM] {mod_id}: application stopped")


def _shutdown(apps: list[Any], scope: CancelScope) -> Optional[Exception]:
    if not apps:
        return None
    with ThreadPoolExecutor(max_workers=len(apps)) as pool:
        futures = [pool.submit(_stop_app, app, scope) for app in apps]
        errors = [future.exception() for future in futures]
    return next((err for err in errors if err is not None), None)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the application until SIGINT or SIGTERM; return the exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    print(_BANNER.format(version=VERSION), end="", flush=True)

    flag_set = FlagSet("gotenberg")
    flag_set.add_duration(_SHUTDOWN_FLAG, _DEFAULT_SHUTDOWN, "Set the graceful shutdown duration")

    descriptors = get_module_descriptors()
    for desc in descriptors:
        flag_set.add_flag_set(desc.flag_set)
    _say("[SYSTEM] modules: " + "".join(f"{desc.id} " for desc in descriptors))

    try:
        flag_set.parse(args)
    except FlagError as err:
        _say(str(err))
        return 1

    parsed_flags = ParsedFlags(flag_set)
    shutdown_duration = parsed_flags.must_duration(_SHUTDOWN_FLAG)
    ctx = Context(parsed_flags, descriptors)

    quit_event = threading.Event()
    start_failures: list[str] = []

    with _SignalHandlers() as handlers:
        for signum in (signal.SIGINT, signal.SIGTERM):
            handlers.install(signum, lambda *_: quit_event.set())

        try:
            apps = ctx.modules(App)
        except ModuleLoadError as err:
            _say(f"[FATAL] {err}")
            return 1

        for app in apps:
            threading.Thread(
                target=_start_app, args=(app, quit_event, start_failures), daemon=True
            ).start()

        try:
            sys_loggers = ctx.modules(SystemLogger)
        except ModuleLoadError as err:
            _say(f"[FATAL] {err}")
            return 1

        for logger in sys_loggers:
            threading.Thread(target=_print_system_messages, args=(logger,), daemon=True).start()

        while not quit_event.wait(_POLL_INTERVAL):
            pass

        if start_failures:
            return 1

        scope = CancelScope(timeout=shutdown_duration.total_seconds())
        # A second Ctrl+C forces the shutdown.
        handlers.install(signal.SIGINT, lambda *_: scope.cancel())

        _say(f"[SYSTEM] graceful shutdown of {_format_duration(shutdown_duration)}")

        error = _shutdown(apps, scope)
        if error is not None:
            _say(f"[FATAL] {error}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())