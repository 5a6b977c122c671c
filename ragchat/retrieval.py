from typing import List, Dict
from time import perf_counter

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .embedding import Embedder
from .errors import EmbeddingError, RetrievalError
from .logging_config import logger
from .vector_store import nearest_neighbors

RAG_PROMPT_TEMPLATE = """Answer the question based on provided context. Augment your knowledge.
Context : {context}

Question : {question}

Finish the answer with the source of data in format: [Source: <source_name>]
"""


def search_similar(db: Session, embedder: Embedder, query: str, top_k: int = 5) -> List[Dict]:
    """
    Search for chunks similar to the query.

    Parameters:
    query (str): The query string to search for.
    top_k (int): The number of top similar chunks to return. Defaults to 5.

    Returns:
    List[Dict]: chunk_text, source_document_name, distance (plus document_id,
    chunk_index), nearest first.

    Raises:
    RetrievalError: embedding or store failure. No partial result is returned.
    """
    t = perf_counter()
    try:
        qv = embedder.embed_query(query)
        rows = nearest_neighbors(db, qv, top_k, dimension=embedder.dimension)
    except (EmbeddingError, SQLAlchemyError, ValueError) as e:
        logger.error("Retrieval failed", query=query[:100], error=str(e))
        raise RetrievalError(f"Retrieval unavailable: {e}") from e

    logger.info("Searched similar chunks", results=len(rows), time_ms=round((perf_counter() - t) * 1000, 2))
    return rows


def build_context(results: List[Dict]) -> str:
    """
    Numbered chunk texts with their source document, followed by the
    list of distinct sources.
    """
    if not results:
        return ""

    parts = []
    sources = []
    for i, r in enumerate(results, start=1):
        name = r["source_document_name"]
        parts.append(f"[{i}] ({name}) {r['chunk_text']}")
        if name not in sources:
            sources.append(name)

    return "\n\n".join(parts) + f"\n\nThe data was taken from {', '.join(sources)}"


def build_rag_prompt(question: str, context: str) -> str:
    return RAG_PROMPT_TEMPLATE.format(context=context, question=question)
