"""
Document management API routes.
Handles document upload, listing, retrieval testing and deletion.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..config import IngestionOptions, settings
from ..deps import get_db, get_embedder, get_ingestion_options
from ..embedding import Embedder
from ..retrieval import search_similar
from ..schemas import DocumentOut, RetrieveBody, RetrievedChunk
from ..services import document_service
from ..services.ingestion_service import ingest_document

router = APIRouter(prefix="/api", tags=["documents"])


# ==================== Document Upload ====================

@router.post("/documents/upload", response_model=DocumentOut, status_code=201)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    options: IngestionOptions = Depends(get_ingestion_options),
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
):
    """
    Upload one document.

    Supported formats: PDF, DOCX, TXT

    Process:
    1. Validate extension and name uniqueness
    2. Optionally save the raw file to DOCUMENT_FOLDER
    3. Extract text, split into chunks, embed
    4. Store document and chunks in one transaction
    """
    filename = file.filename if file is not None else None
    # one byte past the limit is enough for the size check to reject it
    data = await file.read(options.max_upload_bytes + 1) if file is not None else None

    document = await run_in_threadpool(ingest_document, db, embedder, filename, data, options)
    return DocumentOut(
        id=document.id,
        name=document.name,
        size=document.size,
        extension=document.extension,
        created_at=document.created_at,
        num_chunks=len(document.chunks),
    )


# ==================== Document Listing ====================

@router.get("/documents", response_model=List[DocumentOut])
def list_documents(db: Session = Depends(get_db)):
    """All documents, newest first, with chunk counts."""
    return document_service.list_documents(db)


@router.get("/documents/{document_id}", response_model=DocumentOut)
def get_document(document_id: int, db: Session = Depends(get_db)):
    return document_service.get_document(db, document_id)


# ==================== Document Deletion ====================

@router.delete("/documents/{document_id}")
def delete_document(document_id: int, db: Session = Depends(get_db)):
    """
    Deletes a document and all its chunks (ON DELETE CASCADE).
    """
    document_service.delete_document(db, document_id, document_folder=settings.DOCUMENT_FOLDER)
    return {"ok": True, "deleted": document_id}


# ==================== Retrieval ====================

@router.post("/retrieve", response_model=List[RetrievedChunk])
def retrieve(body: RetrieveBody, db: Session = Depends(get_db), embedder: Embedder = Depends(get_embedder)):
    """Nearest chunks for a query, closest first."""
    return search_similar(db, embedder, body.query, top_k=body.top_k or settings.RETRIEVAL_TOP_K)
