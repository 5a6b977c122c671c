"""
Document ingestion: upload -> extract -> chunk -> embed -> store.

The whole ingestion of one document is a single database transaction. A
failure at any step rolls back the Document row together with its chunks,
and a raw copy written to disk for this upload is removed again, so a
document is either fully ingested or absent.
"""
import os
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..chunking import split_text
from ..config import IngestionOptions
from ..embedding import Embedder
from ..errors import EmbeddingError, ErrorKind, ExtractionError, IngestionError
from ..logging_config import logger
from ..models import Document
from ..text_extraction import ALLOWED_EXTENSIONS, extract_text, file_extension
from ..vector_store import bulk_insert_embeddings


def _fail(kind: ErrorKind, filename: Optional[str], message: str, cause: Optional[Exception] = None):
    logger.error("Ingestion failed", filename=filename, kind=kind.value, error=message)
    err = IngestionError(kind, message, filename=filename)
    if cause is not None:
        raise err from cause
    raise err


def raw_document_path(document_folder: str, filename: str) -> str:
    # basename keeps "../x.txt" style names inside the folder
    return os.path.join(document_folder, os.path.basename(filename))


def _write_raw(options: IngestionOptions, filename: str, data: bytes) -> str:
    os.makedirs(options.document_folder, exist_ok=True)
    path = raw_document_path(options.document_folder, filename)
    with open(path, "wb") as f:
        f.write(data)
    return path


def _remove_raw(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove raw document", path=path, error=str(e))


def ingest_document(
    db: Session,
    embedder: Embedder,
    filename: Optional[str],
    data: Optional[bytes],
    options: IngestionOptions,
) -> Document:
    """
    Ingest one uploaded file.

    Args:
        db: open session; committed on success, rolled back on failure
        embedder: embedder used for the chunks (same model as queries)
        filename: original upload name; also the unique document name
        data: raw file bytes
        options: explicit ingestion configuration

    Returns:
        The committed Document.

    Raises:
        IngestionError: kind tells which step failed; ``outcome`` is the
            coarse result (InvalidFileType, DuplicateDocument,
            LocalWriteFailed, ExtractionOrEmbeddingFailed, ...).
    """
    # 1. validation, before any side effect
    if not filename or data is None:
        _fail(ErrorKind.MISSING_FILE, filename, "No file provided")

    name = os.path.basename(filename)
    extension = file_extension(name)
    if extension not in ALLOWED_EXTENSIONS:
        _fail(ErrorKind.INVALID_FILE_TYPE, name, f"Invalid file type: {extension or '<none>'}")

    if len(data) > options.max_upload_bytes:
        _fail(
            ErrorKind.FILE_TOO_LARGE,
            name,
            f"File is larger than {options.max_upload_bytes} bytes",
        )

    log = logger.bind(filename=name, extension=extension, size=len(data))
    raw_path = None

    try:
        # 2. name uniqueness; the unique constraint settles concurrent uploads
        if db.scalar(select(Document.id).where(Document.name == name)) is not None:
            _fail(ErrorKind.DUPLICATE_DOCUMENT, name, "This document already exists")

        document = Document(name=name, size=len(data), extension=extension)
        db.add(document)
        try:
            db.flush()
        except IntegrityError as e:
            _fail(ErrorKind.DUPLICATE_DOCUMENT, name, "This document already exists", e)
        log = log.bind(document_id=document.id)

        # 3. optional raw copy
        if options.save_raw:
            try:
                raw_path = _write_raw(options, name, data)
            except OSError as e:
                _fail(ErrorKind.LOCAL_WRITE_FAILED, name, f"Error writing file locally: {e}", e)
            log.info("Saved raw document", path=raw_path)

        # 4. extract -> chunk -> embed -> store
        try:
            text = extract_text(data, extension)
        except ExtractionError as e:
            _fail(ErrorKind.EXTRACTION_FAILED, name, e.message, e)

        try:
            chunks = split_text(text, options.chunk_max_chars, options.chunk_overlap)
        except ValueError as e:
            _fail(ErrorKind.EXTRACTION_FAILED, name, f"Error chunking text: {e}", e)
        log.info("Created chunks", chunk_count=len(chunks), text_length=len(text))

        try:
            vectors = embedder.embed_documents(chunks)
        except EmbeddingError as e:
            _fail(ErrorKind.EMBEDDING_FAILED, name, e.message, e)

        try:
            inserted = bulk_insert_embeddings(db, document.id, chunks, vectors, dimension=embedder.dimension)
        except (SQLAlchemyError, ValueError) as e:
            _fail(ErrorKind.STORE_FAILED, name, f"Error storing embeddings: {e}", e)

        db.commit()
    except IngestionError:
        db.rollback()
        if raw_path:
            _remove_raw(raw_path)
        raise
    except SQLAlchemyError as e:
        # pre-check or commit failed
        db.rollback()
        if raw_path:
            _remove_raw(raw_path)
        _fail(ErrorKind.STORE_FAILED, name, f"Database error: {e}", e)
    except Exception:
        db.rollback()
        if raw_path:
            _remove_raw(raw_path)
        raise

    log.info("Document ingested", chunks=inserted)
    return document
