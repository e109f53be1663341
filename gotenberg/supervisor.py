"""Supervision of a long-running process shared by queued tasks."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from gotenberg.cancellation import CancelScope, Cancelled, DeadlineExceeded

_POLL_INTERVAL = 0.01


class ProcessAlreadyRestartingError(RuntimeError):
    """Raised when a restart is requested while one is in progress."""

    def __init__(self, message: str = "process already restarting") -> None:
        super().__init__(message)


class MaximumQueueSizeExceededError(RuntimeError):
    """Raised when a task is submitted while the queue is full."""

    def __init__(self, message: str = "maximum queue size exceeded") -> None:
        super().__init__(message)


@runtime_checkable
class Process(Protocol):
    """A process which can be started, stopped and checked for health."""

    def start(self, logger: logging.Logger) -> None:
        """Start the process; raise if it cannot be started."""

    def stop(self, logger: logging.Logger) -> None:
        """Stop the process; raise if it cannot be stopped."""

    def healthy(self, logger: logging.Logger) -> bool:
        """Tell whether the process is healthy."""


def _scope_error(scope: CancelScope, prefix: str = "") -> Exception:
    reason = scope.error()
    message = f"{prefix}: {reason}" if prefix else str(reason)
    if isinstance(reason, (Cancelled, DeadlineExceeded)):
        return type(reason)(message)
    return DeadlineExceeded(message)


class ProcessSupervisor:
    """Runs tasks one at a time against a process it manages.

    The process is started on the first task, restarted when unhealthy and,
    when ``max_req_limit`` is positive, after that many tasks. When
    ``max_queue_size`` is positive, tasks beyond that many waiting ones are
    refused.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger],
        process: Process,
        max_req_limit: int = 0,
        max_queue_size: int = 0,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger("gotenberg")
        self._process = process
        self._max_req_limit = max_req_limit
        self._max_queue_size = max_queue_size
        self._mutex = threading.Lock()
        self._state = threading.Lock()
        self._first_start = False
        self._restarting = False
        self._req_counter = 0
        self._queue_size = 0
        self._restarts = 0

    def launch(self) -> None:
        """Start the managed process."""
        self._logger.debug("start process")
        try:
            self._process.start(self._logger)
        except Exception as err:
            raise RuntimeError(f"start process: {err}") from err
        with self._state:
            self._first_start = True
        self._logger.debug("process successfully started")

    def shutdown(self) -> None:
        """Stop the managed process."""
        self._logger.debug("shutdown process")
        try:
            self._process.stop(self._logger)
        except Exception as err:
            raise RuntimeError(f"shutdown process: {err}") from err
        self._logger.debug("process successfully shutdown")

    def _restart(self) -> None:
        with self._state:
            if self._restarting:
                self._logger.debug("process already restarting, skip restart")
                raise ProcessAlreadyRestartingError()
            self._restarting = True

        self._logger.debug("restart process")
        try:
            try:
                self.shutdown()
            except RuntimeError as err:
                # Chances are the process was already stopped.
                self._logger.debug("stop process before restart: %s", err)

            try:
                self.launch()
            except RuntimeError as err:
                raise RuntimeError(f"restart process: {err}") from err

            with self._state:
                self._req_counter = 0
                self._restarts += 1
            self._logger.debug("process successfully restarted")
        finally:
            with self._state:
                self._restarting = False

    def healthy(self) -> bool:
        """Tell whether the process is healthy.

        A process not yet started or being restarted counts as healthy.
        """
        with self._state:
            if not self._first_start or self._restarting:
                return True
        return bool(self._process.healthy(self._logger))

    def run(
        self,
        scope: Optional[CancelScope],
        logger: Optional[logging.Logger],
        task: Callable[[], Any],
    ) -> Any:
        """Run ``task`` with exclusive use of the process and return its result.

        Waits for the process in queue until ``scope`` is done, then starts or
        restarts the process as needed. Exceptions raised by the task
        propagate unchanged.
        """
        scope = scope if scope is not None else CancelScope()
        log = logger if logger is not None else self._logger

        with self._state:
            if 0 < self._max_queue_size <= self._queue_size:
                raise MaximumQueueSizeExceededError()
            self._queue_size += 1

        while True:
            try:
                return self._run_once(scope, log, task)
            except ProcessAlreadyRestartingError:
                log.debug(
                    "process is already restarting, trying to acquire process lock again..."
                )
                with self._state:
                    self._queue_size += 1

    def _acquire(self, scope: CancelScope, log: logging.Logger) -> None:
        while not self._mutex.acquire(timeout=_POLL_INTERVAL):
            if scope.done():
                log.debug("failed to acquire process lock before deadline")
                with self._state:
                    self._queue_size -= 1
                raise _scope_error(scope, "acquire process lock") from scope.error()
        log.debug("process lock acquired")

    def _run_once(
        self, scope: CancelScope, log: logging.Logger, task: Callable[[], Any]
    ) -> Any:
        self._acquire(scope, log)
        try:
            with self._state:
                self._queue_size -= 1
                self._req_counter += 1
                first_start = self._first_start

            if not first_start:
                self._guarded(scope, self.launch, "process first start")

            if not self.healthy():
                self._logger.debug(
                    "process is unhealthy, cannot handle task, restarting..."
                )
                self._guarded(scope, self._restart, "process restart before task")

            with self._state:
                limit_reached = 0 < self._max_req_limit <= self._req_counter
            if limit_reached:
                self._logger.debug("max request limit reached, restarting...")
                self._guarded(scope, self._restart, "process restart before task")

            return self._run_with_deadline(scope, task)
        finally:
            log.debug("process lock released")
            self._mutex.release()

    def _guarded(
        self, scope: CancelScope, step: Callable[[], Any], prefix: str
    ) -> None:
        try:
            self._run_with_deadline(scope, step)
        except ProcessAlreadyRestartingError:
            raise
        except (Cancelled, DeadlineExceeded) as err:
            raise type(err)(f"{prefix}: {err}") from err
        except Exception as err:
            raise RuntimeError(f"{prefix}: {err}") from err

    def _run_with_deadline(self, scope: CancelScope, task: Callable[[], Any]) -> Any:
        if scope.done():
            raise _scope_error(scope)

        outcome: dict[str, Any] = {}
        finished = threading.Event()

        def target() -> None:
            try:
                outcome["value"] = task()
            except BaseException as err:  # handed over to the caller
                outcome["error"] = err
            finally:
                finished.set()

        threading.Thread(target=target, daemon=True).start()
        while not finished.wait(_POLL_INTERVAL):
            if scope.done():
                raise _scope_error(scope)

        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("value")

    def req_queue_size(self) -> int:
        """Return the number of tasks waiting for the process."""
        with self._state:
            return self._queue_size

    def restarts_count(self) -> int:
        """Return how many times the process has been restarted."""
        with self._state:
            return self._restarts