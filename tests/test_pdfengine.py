import dataclasses
import logging

import pytest

from gotenberg.cancellation import CancelScope
from gotenberg.pdfengine import (
    MetadataValueNotSupportedError,
    MethodNotSupportedError,
    PdfA,
    PdfEngine,
    PdfEngineProvider,
    PdfFormatNotSupportedError,
    PdfFormats,
)


class _RecordingEngine:
    def __init__(self):
        self.calls = []

    def merge(self, scope, logger, input_paths, output_path):
        self.calls.append(("merge", tuple(input_paths), output_path))

    def convert(self, scope, logger, formats, input_path, output_path):
        if formats.pdf_a and formats.pdf_a not in (PdfA.A1B, PdfA.A2B):
            raise PdfFormatNotSupportedError()
        self.calls.append(("convert", formats, input_path, output_path))

    def read_metadata(self, scope, logger, input_path):
        raise MethodNotSupportedError()

    def write_metadata(self, scope, logger, metadata, input_path):
        if any(not isinstance(value, str) for value in metadata.values()):
            raise MetadataValueNotSupportedError()
        self.calls.append(("write_metadata", dict(metadata), input_path))


class _Provider:
    def __init__(self, engine):
        self.engine = engine

    def pdf_engine(self):
        return self.engine


class _MergeOnly:
    def merge(self, scope, logger, input_paths, output_path):
        return None


@pytest.mark.parametrize(
    "member, value",
    [
        (PdfA.A1A, "PDF/A-1a"),
        (PdfA.A1B, "PDF/A-1b"),
        (PdfA.A2A, "PDF/A-2a"),
        (PdfA.A2B, "PDF/A-2b"),
        (PdfA.A2U, "PDF/A-2u"),
        (PdfA.A3A, "PDF/A-3a"),
        (PdfA.A3B, "PDF/A-3b"),
        (PdfA.A3U, "PDF/A-3u"),
    ],
)
def test_pdf_a_values_round_trip(member, value):
    assert member.value == value
    assert PdfA(value) is member
    assert member == value


def test_pdf_a_unknown_value():
    with pytest.raises(ValueError):
        PdfA("PDF/A-4")


def test_pdf_formats_defaults_and_frozen():
    formats = PdfFormats()
    assert formats.pdf_a == ""
    assert formats.pdf_ua is False
    with pytest.raises(dataclasses.FrozenInstanceError):
        formats.pdf_ua = True


def test_pdf_formats_equality():
    assert PdfFormats(PdfA.A1B, True) == PdfFormats("PDF/A-1b", True)


def test_error_messages():
    assert str(MethodNotSupportedError()) == "method not supported"
    assert str(PdfFormatNotSupportedError()) == "PDF format not supported"
    assert str(MetadataValueNotSupportedError()) == "metadata value not supported"


def test_engine_satisfies_interface():
    engine = _RecordingEngine()
    provider = _Provider(engine)
    assert isinstance(engine, PdfEngine)
    assert isinstance(provider, PdfEngineProvider)
    assert not isinstance(engine, PdfEngineProvider)

    formats = PdfFormats(PdfA.A2B, True)
    provider.pdf_engine().convert(
        CancelScope(), logging.getLogger("test"), formats, "in.pdf", "out.pdf"
    )
    assert engine.calls == [("convert", PdfFormats("PDF/A-2b", True), "in.pdf", "out.pdf")]


def test_incomplete_engine_is_not_engine():
    recording = _RecordingEngine()
    candidates = [_MergeOnly(), recording]
    usable = [engine for engine in candidates if isinstance(engine, PdfEngine)]
    assert usable == [recording]

    usable[0].convert(
        CancelScope(), logging.getLogger("test"), PdfFormats(), "in.pdf", "out.pdf"
    )
    assert recording.calls == [("convert", PdfFormats("", False), "in.pdf", "out.pdf")]


def test_engine_through_provider():
    engine = _RecordingEngine()
    scope = CancelScope()
    logger = logging.getLogger("test")
    provided = _Provider(engine).pdf_engine()
    provided.merge(scope, logger, ["a.pdf", "b.pdf"], "out.pdf")
    provided.convert(scope, logger, PdfFormats(PdfA.A1B), "in.pdf", "out.pdf")
    assert engine.calls == [
        ("merge", ("a.pdf", "b.pdf"), "out.pdf"),
        ("convert", PdfFormats(PdfA.A1B), "in.pdf", "out.pdf"),
    ]


def test_engine_errors():
    engine = _RecordingEngine()
    scope = CancelScope()
    logger = logging.getLogger("test")
    with pytest.raises(PdfFormatNotSupportedError):
        engine.convert(scope, logger, PdfFormats(PdfA.A3U), "in.pdf", "out.pdf")
    with pytest.raises(MethodNotSupportedError):
        engine.read_metadata(scope, logger, "in.pdf")
    with pytest.raises(MetadataValueNotSupportedError):
        engine.write_metadata(scope, logger, {"Pages": object()}, "in.pdf")
    assert engine.calls == []