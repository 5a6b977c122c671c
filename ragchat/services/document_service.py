"""
Document management service.
Handles listing, lookup and deletion of ingested documents.
"""
import os
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..logging_config import logger
from ..models import Document, EmbeddingChunk
from .ingestion_service import raw_document_path


def _serialize(document: Document, num_chunks: int) -> Dict[str, Any]:
    return {
        "id": document.id,
        "name": document.name,
        "size": document.size,
        "extension": document.extension,
        "created_at": document.created_at,
        "num_chunks": num_chunks,
    }


def list_documents(db: Session) -> List[Dict[str, Any]]:
    """
    All documents, newest first, with chunk counts.
    """
    stmt = (
        select(Document, func.count(EmbeddingChunk.id))
        .outerjoin(EmbeddingChunk, EmbeddingChunk.document_id == Document.id)
        .group_by(Document.id)
        .order_by(Document.created_at.desc(), Document.id.desc())
    )
    documents = [_serialize(doc, count) for doc, count in db.execute(stmt).all()]
    logger.info("Listed documents", count=len(documents))
    return documents


def get_document(db: Session, document_id: int) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: If the document does not exist
    """
    document = db.get(Document, document_id)
    if document is None:
        raise NotFoundError(f"Document {document_id} not found")
    count = db.scalar(
        select(func.count(EmbeddingChunk.id)).where(EmbeddingChunk.document_id == document_id)
    )
    return _serialize(document, count or 0)


def delete_document(db: Session, document_id: int, document_folder: Optional[str] = None) -> None:
    """
    Delete a document and all its chunks (ON DELETE CASCADE).
    A raw copy in ``document_folder`` is removed as well.

    Raises:
        NotFoundError: If the document does not exist
    """
    document = db.get(Document, document_id)
    if document is None:
        logger.warning("Document not found for deletion", document_id=document_id)
        raise NotFoundError(f"Document {document_id} not found")

    name = document.name
    db.delete(document)
    db.commit()

    if document_folder:
        path = raw_document_path(document_folder, name)
        if os.path.exists(path):
            os.remove(path)

    logger.info("Document deleted", document_id=document_id, name=name)
