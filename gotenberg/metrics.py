"""Metrics and logger provider interfaces."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gotenberg.modules import Module


@dataclass
class Metric:
    """A unitary metric: a unique name, a reader of its current value and an
    optional description."""

    name: str
    read: Callable[[], float]
    description: str = ""


@runtime_checkable
class MetricsProvider(Protocol):
    """A module which provides a list of metrics."""

    def metrics(self) -> list[Metric]:
        """Return the metrics."""


@runtime_checkable
class LoggerProvider(Protocol):
    """A module which creates loggers for other modules."""

    def logger(self, mod: Module) -> logging.Logger:
        """Return a logger for ``mod``."""