"""
Chunk/vector persistence and nearest-neighbour search.

The metric is cosine distance for the whole store: the HNSW index is built
with ``vector_cosine_ops`` and queries order by ``<=>``. Databases without
pgvector (SQLite in tests) get an exact numpy scan using the same metric.
"""
from typing import Dict, List, Sequence

import numpy as np
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .models import Document, EmbeddingChunk

DISTANCE_METRIC = "cosine"


def _check_vector(vec: Sequence[float], dimension: int, position: int) -> List[float]:
    vec = [float(x) for x in vec]
    if len(vec) != dimension:
        raise ValueError(f"Vector {position} has {len(vec)} dimensions, expected {dimension}")
    return vec


def bulk_insert_embeddings(
    db: Session,
    document_id: int,
    chunks: Sequence[str],
    vectors: Sequence[Sequence[float]],
    dimension: int = None,
) -> int:
    """
    Insert one row per (chunk, vector) pair for ``document_id``.

    Runs inside the caller's transaction: if any row fails, rolling that
    transaction back leaves none of them. Input is validated before the
    first row is added.
    """
    dimension = dimension or settings.EMBED_DIM
    if len(chunks) != len(vectors):
        raise ValueError(f"Got {len(chunks)} chunks but {len(vectors)} vectors")

    rows = []
    for i, (chunk, vec) in enumerate(zip(chunks, vectors)):
        if not chunk:
            raise ValueError(f"Chunk {i} is empty")
        rows.append(
            EmbeddingChunk(
                document_id=document_id,
                chunk_index=i,
                chunk=chunk,
                embedding=_check_vector(vec, dimension, i),
            )
        )

    db.add_all(rows)
    db.flush()
    return len(rows)


def _row(chunk: str, name: str, document_id: int, chunk_index: int, distance: float) -> Dict:
    return {
        "chunk_text": chunk,
        "source_document_name": name,
        "document_id": document_id,
        "chunk_index": chunk_index,
        "distance": float(distance),
    }


def _pgvector_nearest(db: Session, query_vector: List[float], k: int) -> List[Dict]:
    distance = EmbeddingChunk.embedding.cosine_distance(query_vector).label("distance")
    stmt = (
        select(
            EmbeddingChunk.chunk,
            Document.name,
            EmbeddingChunk.document_id,
            EmbeddingChunk.chunk_index,
            distance,
        )
        .join(Document, Document.id == EmbeddingChunk.document_id)
        .order_by(distance, EmbeddingChunk.id)
        .limit(k)
    )
    return [_row(*r) for r in db.execute(stmt).all()]


def _scan_nearest(db: Session, query_vector: List[float], k: int) -> List[Dict]:
    stmt = (
        select(
            EmbeddingChunk.chunk,
            Document.name,
            EmbeddingChunk.document_id,
            EmbeddingChunk.chunk_index,
            EmbeddingChunk.embedding,
        )
        .join(Document, Document.id == EmbeddingChunk.document_id)
        .order_by(EmbeddingChunk.id)
    )
    rows = db.execute(stmt).all()
    if not rows:
        return []

    matrix = np.vstack([np.asarray(r.embedding, dtype=float) for r in rows])
    q = np.asarray(query_vector, dtype=float)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    norms[norms == 0] = 1.0
    distances = 1.0 - (matrix @ q) / norms

    # stable sort keeps insertion order between equal distances
    order = np.argsort(distances, kind="stable")[:k]
    return [
        _row(rows[i].chunk, rows[i].name, rows[i].document_id, rows[i].chunk_index, distances[i])
        for i in order
    ]


def nearest_neighbors(db: Session, query_vector: Sequence[float], k: int, dimension: int = None) -> List[Dict]:
    """
    The ``k`` chunks closest to ``query_vector``, nearest first.

    Each item: chunk_text, source_document_name, document_id, chunk_index,
    distance (cosine distance).
    """
    if k <= 0:
        return []
    query_vector = _check_vector(query_vector, dimension or settings.EMBED_DIM, 0)

    if db.get_bind().dialect.name == "postgresql":
        return _pgvector_nearest(db, query_vector, k)
    return _scan_nearest(db, query_vector, k)
