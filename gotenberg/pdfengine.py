"""The interface of engines which operate on PDF files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from gotenberg.cancellation import CancelScope


class MethodNotSupportedError(Exception):
    """Raised when an engine does not support a method."""

    def __init__(self, message: str = "method not supported") -> None:
        super().__init__(message)


class PdfFormatNotSupportedError(Exception):
    """Raised when an engine cannot convert to a requested PDF format."""

    def __init__(self, message: str = "PDF format not supported") -> None:
        super().__init__(message)


class MetadataValueNotSupportedError(Exception):
    """Raised when a metadata value is not supported."""

    def __init__(self, message: str = "metadata value not supported") -> None:
        super().__init__(message)


class PdfA(str, Enum):
    """The PDF/A standard formats."""

    A1A = "PDF/A-1a"
    A1B = "PDF/A-1b"
    A2A = "PDF/A-2a"
    A2B = "PDF/A-2b"
    A2U = "PDF/A-2u"
    A3A = "PDF/A-3a"
    A3B = "PDF/A-3b"
    A3U = "PDF/A-3u"


@dataclass(frozen=True)
class PdfFormats:
    """Target formats of a PDF conversion.

    ``pdf_a`` is a PDF/A format or an empty string for none; ``pdf_ua``
    requests PDF/UA (Universal Accessibility) compliance.
    """

    pdf_a: Union[PdfA, str] = ""
    pdf_ua: bool = False


@runtime_checkable
class PdfEngine(Protocol):
    """Operations on PDF files."""

    def merge(
        self,
        scope: CancelScope,
        logger: logging.Logger,
        input_paths: list[str],
        output_path: str,
    ) -> None:
        """Merge the PDFs into one, in the order of ``input_paths``."""

    def convert(
        self,
        scope: CancelScope,
        logger: logging.Logger,
        formats: PdfFormats,
        input_path: str,
        output_path: str,
    ) -> None:
        """Convert a PDF to ``formats``; without a format, do nothing."""

    def read_metadata(
        self, scope: CancelScope, logger: logging.Logger, input_path: str
    ) -> dict[str, Any]:
        """Return the metadata of a PDF file."""

    def write_metadata(
        self,
        scope: CancelScope,
        logger: logging.Logger,
        metadata: dict[str, Any],
        input_path: str,
    ) -> None:
        """Write ``metadata`` into a PDF file."""


@runtime_checkable
class PdfEngineProvider(Protocol):
    """A module which supplies a :class:`PdfEngine` to other modules."""

    def pdf_engine(self) -> PdfEngine:
        """Return an engine for PDF operations."""