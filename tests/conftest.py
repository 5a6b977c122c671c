"""Pytest configuration and shared fixtures."""
import hashlib
import io
import os
import re

import pytest

# Set test environment variables before importing the package
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMBED_MODEL"] = "test-hashing-model"
os.environ["EMBED_DIM"] = "64"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SAVE_RAW_DOCUMENT_LOCAL"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["DEFAULT_CHAT_MODEL"] = "ollama:qwen2.5:3b"

from ragchat.config import IngestionOptions  # noqa: E402
from ragchat.db import SessionLocal, engine  # noqa: E402
from ragchat.embedding import Embedder  # noqa: E402
from ragchat.models import Base  # noqa: E402

TEST_DIM = 64


class HashingBackend:
    """Deterministic bag-of-words embedding: each token bumps one hashed bucket."""

    model_name = "test-hashing-model"

    def __init__(self, dimension: int = TEST_DIM):
        self.dimension = dimension
        self.calls = []

    def encode(self, texts):
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            vec = [0.0] * self.dimension
            for token in re.findall(r"[a-z0-9]+", text.lower()):
                bucket = int(hashlib.md5(token.encode()).hexdigest(), 16) % self.dimension
                vec[bucket] += 1.0
            norm = sum(x * x for x in vec) ** 0.5
            if norm == 0:
                vec[0] = 1.0
                norm = 1.0
            vectors.append([x / norm for x in vec])
        return vectors


class FailingBackend:
    model_name = "failing-model"

    def encode(self, texts):
        raise ConnectionError("embedding server unreachable")


def make_pdf(text: str) -> bytes:
    """Smallest valid one-page PDF showing ``text`` in Helvetica."""
    content = f"BT /F1 18 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


def make_docx(paragraphs, table_rows=None) -> bytes:
    from docx import Document as DocxDocument

    doc = DocxDocument()
    for para in paragraphs:
        doc.add_paragraph(para)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def tables():
    """Fresh schema for every test."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session(tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hashing_backend():
    return HashingBackend()


@pytest.fixture
def embedder(hashing_backend):
    return Embedder(hashing_backend, dimension=TEST_DIM, batch_size=4, timeout=5.0)


@pytest.fixture
def failing_embedder():
    return Embedder(FailingBackend(), dimension=TEST_DIM, batch_size=4, timeout=5.0)


@pytest.fixture
def options(tmp_path):
    return IngestionOptions(
        save_raw=False,
        document_folder=str(tmp_path / "documents"),
        max_upload_bytes=1024 * 1024,
        chunk_max_chars=1000,
        chunk_overlap=100,
    )


@pytest.fixture
def client(tables, embedder, options):
    """Test client with the hashing embedder and a temp document folder."""
    from typing import Optional

    from fastapi import Form
    from fastapi.testclient import TestClient

    from ragchat.deps import get_embedder, get_ingestion_options
    from ragchat.main import app

    def _options(save_raw: Optional[bool] = Form(None)):
        return options.model_copy(update={"save_raw": bool(save_raw)})

    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_ingestion_options] = _options
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
