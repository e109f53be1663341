"""Child processes run in their own process group, so that killing one also
kills every process it started."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Iterable
from typing import IO, Optional

from gotenberg.cancellation import CancelScope

_POLL_INTERVAL = 0.01
_READER_JOIN_TIMEOUT = 1.0

_NIL_SCOPE_EXIT_CODE = 10
_NOT_STARTED_EXIT_CODE = 131
_SCOPE_DONE_EXIT_CODE = 62


class CommandError(Exception):
    """Raised when a command cannot be started, fails, or cannot be killed.

    ``exit_code`` holds the exit code that goes with the failure, if any.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"signal: {name}"
    return f"exit status {returncode}"


def _exit_code(returncode: int) -> int:
    # A process terminated by a signal has no exit code of its own.
    return returncode if returncode >= 0 else -1


class Cmd:
    """A command whose process and all its children can be killed at once.

    When the logger is enabled for debug, the process's standard output and
    error are forwarded line by line to ``<logger>.stdout`` and
    ``<logger>.stderr``; otherwise they are discarded.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger],
        bin_path: str,
        args: Iterable[str] = (),
        scope: Optional[CancelScope] = None,
    ) -> None:
        base = logger if logger is not None else logging.getLogger("gotenberg")
        self.logger = base.getChild(bin_path.replace("/", "") or "cmd")
        self.args = [bin_path, *args]
        self.scope = scope
        self._process: Optional[subprocess.Popen] = None
        self._readers: list[threading.Thread] = []

    @property
    def pid(self) -> Optional[int]:
        """The process ID, or None before the command has started."""
        return None if self._process is None else self._process.pid

    def start(self) -> None:
        """Start the command without waiting for it to complete."""
        if self._process is not None:
            raise CommandError("start unix process: already started")

        forward = self.logger.isEnabledFor(logging.DEBUG)
        output = subprocess.PIPE if forward else subprocess.DEVNULL
        self.logger.debug("start unix process: %s", " ".join(self.args))

        try:
            process = subprocess.Popen(
                self.args,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except (OSError, ValueError) as err:
            raise CommandError(
                f"start unix process: {err}", exit_code=_NOT_STARTED_EXIT_CODE
            ) from err

        self._process = process
        if forward:
            self._readers = [
                self._forward(process.stdout, "stdout"),
                self._forward(process.stderr, "stderr"),
            ]

    def _forward(self, stream: IO[bytes], name: str) -> threading.Thread:
        logger = self.logger.getChild(name)

        def pump() -> None:
            try:
                for raw in iter(stream.readline, b""):
                    line = raw.decode(errors="replace").rstrip("\r\n")
                    if line:
                        logger.debug(line)
            except (OSError, ValueError) as err:
                logger.error("pipe unix process output error: %s", err)
            finally:
                try:
                    stream.close()
                except OSError as err:
                    logger.error("close reader: %s", err)

        thread = threading.Thread(target=pump, name=f"{self.logger.name}.{name}", daemon=True)
        thread.start()
        return thread

    def wait(self) -> int:
        """Wait for the started command to complete and return its exit code, 0.

        Raises CommandError if the command was not started or did not exit
        successfully.
        """
        if self._process is None:
            raise CommandError("wait for unix process: not started")
        returncode = self._process.wait()
        if returncode != 0:
            raise CommandError(
                f"wait for unix process: {_describe_exit(returncode)}",
                exit_code=_exit_code(returncode),
            )
        return 0

    def exec(self) -> int:
        """Run the command until it completes or its scope is done.

        In every case the process and all its children are killed afterwards.
        Returns 0 on success; otherwise raises CommandError carrying the exit
        code: 10 without a scope, 131 if the process could not start, 62 if
        the scope was done first, or the process's own exit code.
        """
        if self.scope is None:
            raise CommandError("nil context", exit_code=_NIL_SCOPE_EXIT_CODE)

        try:
            self.start()
        except CommandError as err:
            code = err.exit_code if err.exit_code is not None else _NOT_STARTED_EXIT_CODE
            raise CommandError(f"start command: {err}", exit_code=code) from err

        process = self._process
        while True:
            try:
                returncode = process.wait(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if self.scope.done():
                    self._kill_logging_errors()
                    process.wait()
                    self._join_readers()
                    reason = self.scope.error()
                    raise CommandError(
                        f"context done: {reason}", exit_code=_SCOPE_DONE_EXIT_CODE
                    ) from reason

        self._kill_logging_errors()
        self._join_readers()

        if returncode == 0:
            return 0
        raise CommandError(
            f"unix process error: wait for unix process: {_describe_exit(returncode)}",
            exit_code=_exit_code(returncode),
        )

    def _kill_logging_errors(self) -> None:
        try:
            self.kill()
        except CommandError as err:
            self.logger.error(str(err))

    def _join_readers(self) -> None:
        for reader in self._readers:
            reader.join(timeout=_READER_JOIN_TIMEOUT)

    def kill(self) -> bool:
        """Kill the process and all its children.

        Returns True if a signal was delivered, False if there was no process
        or it was already gone.
        """
        if self._process is None:
            return False

        # Reap the leader if it has exited so that a finished group is seen as gone.
        self._process.poll()
        try:
            os.killpg(self._process.pid, signal.SIGKILL)
        except ProcessLookupError:
            self.logger.debug("unix process already killed")
            return False
        except OSError as err:
            raise CommandError(f"kill unix process: {err}") from err

        self.logger.debug("unix process killed")
        return True


def command(logger: Optional[logging.Logger], bin_path: str, *args: str) -> Cmd:
    """Create a command without a scope."""
    return Cmd(logger, bin_path, args)


def command_context(
    scope: Optional[CancelScope],
    logger: Optional[logging.Logger],
    bin_path: str,
    *args: str,
) -> Cmd:
    """Create a command bound to ``scope``; raises CommandError without one."""
    if scope is None:
        raise CommandError("nil context")
    return Cmd(logger, bin_path, args, scope)