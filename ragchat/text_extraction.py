import os
from io import BytesIO

from pypdf import PdfReader
from docx import Document as DocxDocument

from .errors import ExtractionError

ALLOWED_EXTENSIONS = (".txt", ".pdf", ".docx")


def file_extension(filename: str) -> str:
    """
    Lowercase text after the last dot, with the dot; "" when there is no dot.
    A bare ".txt" counts as a .txt file.
    """
    name = os.path.basename(filename or "")
    if "." not in name:
        return ""
    return "." + name.rsplit(".", 1)[1].lower()


def read_text_from_pdf(data: bytes) -> str:
    pdf = PdfReader(BytesIO(data))
    parts = []
    for page in pdf.pages:
        parts.append(page.extract_text() or "")
    return "\n".join(parts)


def read_text_from_docx(data: bytes) -> str:
    """
    Extract text from DOCX file including both paragraphs and tables.
    Tables are converted to readable text format.
    """
    doc = DocxDocument(BytesIO(data))
    parts = []

    for para in doc.paragraphs:
        text = para.text.strip()
        if text:
            parts.append(text)

    for table in doc.tables:
        table_text = extract_table_text(table)
        if table_text:
            parts.append(table_text)

    return "\n\n".join(parts)


def extract_table_text(table) -> str:
    """
    Convert a DOCX table to readable text format.
    Each row is preserved with clear separators.
    """
    lines = []

    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if not any(cells):
            continue
        lines.append(" | ".join(cells))

    return "\n".join(lines)


def read_text_from_txt(data: bytes) -> str:
    # utf-8-sig drops a BOM; anything that is not valid UTF-8 is rejected
    return data.decode("utf-8-sig")


_READERS = {
    ".txt": read_text_from_txt,
    ".pdf": read_text_from_pdf,
    ".docx": read_text_from_docx,
}


def extract_text(data: bytes, extension: str) -> str:
    """
    Turn raw upload bytes into plain text, dispatching on the extension.

    Raises:
        ExtractionError: unsupported extension, unreadable file, or a
            document without any extractable text.
    """
    reader = _READERS.get(extension)
    if reader is None:
        raise ExtractionError(f"Unsupported file type: {extension!r}")

    try:
        text = reader(data)
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from {extension} file: {e}") from e

    if not text.strip():
        raise ExtractionError(f"No extractable text in {extension} file")
    return text
