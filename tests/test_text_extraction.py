"""Unit tests for text extraction from uploaded bytes."""
import pytest

from ragchat.errors import ErrorKind, ExtractionError
from ragchat.text_extraction import extract_text, file_extension
from tests.conftest import make_docx, make_pdf


@pytest.mark.unit
class TestFileExtension:
    """Test cases for file_extension."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("notes.txt", ".txt"),
            ("Report.PDF", ".pdf"),
            ("archive.tar.gz", ".gz"),
            ("README", ""),
            (".txt", ".txt"),
            ("notes.", "."),
            ("report.exe", ".exe"),
            ("", ""),
        ],
    )
    def test_extension(self, filename, expected):
        assert file_extension(filename) == expected


@pytest.mark.unit
class TestExtractText:
    """Test cases for extract_text."""

    def test_txt(self):
        assert extract_text("Hello, world.\nSecond line.".encode("utf-8"), ".txt") == "Hello, world.\nSecond line."

    def test_txt_drops_bom(self):
        assert extract_text(b"\xef\xbb\xbfcaf\xc3\xa9", ".txt") == "café"

    def test_txt_invalid_utf8_rejected(self):
        with pytest.raises(ExtractionError) as exc:
            extract_text(b"\xff\xfe\xfa broken", ".txt")
        assert exc.value.kind == ErrorKind.EXTRACTION_FAILED
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)

    @pytest.mark.parametrize("data", [b"", b"   \n\t  "])
    def test_empty_text_rejected(self, data):
        with pytest.raises(ExtractionError):
            extract_text(data, ".txt")

    def test_pdf(self):
        text = extract_text(make_pdf("Quarterly revenue grew"), ".pdf")
        assert "Quarterly revenue grew" in text

    def test_corrupt_pdf_rejected(self):
        with pytest.raises(ExtractionError):
            extract_text(b"%PDF-1.4 this is not really a pdf", ".pdf")

    def test_docx_paragraphs_and_tables(self):
        data = make_docx(
            ["Employee handbook", "Holidays are listed below."],
            table_rows=[["Day", "Date"], ["New Year", "1 January"]],
        )
        text = extract_text(data, ".docx")

        assert "Employee handbook" in text
        assert "Holidays are listed below." in text
        assert "Day | Date" in text
        assert "New Year | 1 January" in text
        # paragraphs come before table rows
        assert text.index("Employee handbook") < text.index("Day | Date")

    def test_corrupt_docx_rejected(self):
        with pytest.raises(ExtractionError):
            extract_text(b"PK\x03\x04 not a zip archive", ".docx")

    def test_unsupported_extension_rejected(self):
        with pytest.raises(ExtractionError) as exc:
            extract_text(b"MZ\x90\x00", ".exe")
        assert exc.value.kind == ErrorKind.EXTRACTION_FAILED
