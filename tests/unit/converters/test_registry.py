"""Tests for strategy resolution and in-process conversion."""

from pathlib import Path

import pytest

from umd.converters import (
    ConversionError,
    UnsupportedFileTypeError,
    convert_file,
    get_strategy,
    sidecar_path,
)
from umd.converters.markitdown_strategy import MarkItDownStrategy
from umd.core.file_types import FileType


class UpperCaseStrategy:
    """Writes the file's text, upper-cased, as its sidecar."""

    def extract_text(self, path: Path) -> None:
        sidecar_path(path).write_text(path.read_text().upper())


class BrokenStrategy:
    def extract_text(self, path: Path) -> None:
        raise ConversionError(f"cannot parse {path.name}")


class TestSidecarPath:
    def test_appends_md(self):
        assert sidecar_path(Path("/docs/a.pdf")) == Path("/docs/a.pdf.md")


class TestGetStrategy:
    """Tests for get_strategy."""

    @pytest.mark.parametrize("name", ["a.pdf", "b.PNG", "c.docx", "d.pptx", "e.jpeg"])
    def test_builtin_table(self, name):
        assert isinstance(get_strategy(Path(name)), MarkItDownStrategy)

    def test_unsupported(self):
        with pytest.raises(UnsupportedFileTypeError, match="Unsupported file type"):
            get_strategy(Path("notes.txt"))

    def test_custom_table_without_type(self):
        with pytest.raises(UnsupportedFileTypeError):
            get_strategy(Path("a.png"), {FileType.PDF: UpperCaseStrategy})


class TestConvertFile:
    """Tests for convert_file."""

    def test_writes_sidecar(self, tmp_path: Path):
        source = tmp_path / "a.pdf"
        source.write_text("hello")
        output = convert_file(source, {FileType.PDF: UpperCaseStrategy})
        assert output == tmp_path / "a.pdf.md"
        assert output.read_text() == "HELLO"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            convert_file(tmp_path / "gone.pdf", {FileType.PDF: UpperCaseStrategy})

    def test_directory_is_not_a_file(self, tmp_path: Path):
        folder = tmp_path / "folder.pdf"
        folder.mkdir()
        with pytest.raises(FileNotFoundError):
            convert_file(folder, {FileType.PDF: UpperCaseStrategy})

    def test_strategy_failure_propagates(self, tmp_path: Path):
        source = tmp_path / "a.pdf"
        source.write_text("hello")
        with pytest.raises(ConversionError, match="cannot parse a.pdf"):
            convert_file(source, {FileType.PDF: BrokenStrategy})
        assert not sidecar_path(source).exists()


class FakeMarkItDown:
    """Returns a fixed document instead of parsing the file."""

    def __init__(self, text: str) -> None:
        self.text = text

    def convert(self, source: str):
        return type("Result", (), {"text_content": self.text})()


def _strategy(text: str) -> MarkItDownStrategy:
    strategy = MarkItDownStrategy()
    # Pre-fill the cached converter
    strategy.__dict__["_md"] = FakeMarkItDown(text)
    return strategy


class TestMarkItDownStrategy:
    """Tests for MarkItDownStrategy with the converter stubbed out."""

    def test_writes_text(self, tmp_path: Path):
        source = tmp_path / "a.docx"
        source.write_bytes(b"docx")
        _strategy("# Title\n\nBody\n").extract_text(source)
        assert sidecar_path(source).read_text() == "# Title\n\nBody\n"

    def test_empty_text_is_error(self, tmp_path: Path):
        source = tmp_path / "a.pdf"
        source.write_bytes(b"%PDF")
        with pytest.raises(ConversionError, match="No text could be extracted"):
            _strategy("   ").extract_text(source)
        assert not sidecar_path(source).exists()
