"""
Text embedding.

One ``Embedder`` serves both ingestion (``embed_documents``) and queries
(``embed_query``) so stored and query vectors always come from the same
model and have the same dimension.
"""
import concurrent.futures
from concurrent.futures import ThreadPoolExecutor
from time import monotonic
from typing import List, Sequence

import numpy as np

from .config import settings, Settings
from .errors import EmbeddingError
from .logging_config import logger
from .openai_client import get_openai_client

OPENAI_PREFIX = "openai:"


class SentenceTransformerBackend:
    """Local sentence-transformers model. Vectors are L2-normalised."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        self._model = None

    def load(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            logger.info("Loading embedding model", model=self.model_name)
            self._model = SentenceTransformer(
                self.model_name,
                tokenizer_kwargs={"clean_up_tokenization_spaces": False},
            )
        return self._model

    def encode(self, texts: List[str]) -> List[List[float]]:
        vecs = self.load().encode(texts, normalize_embeddings=True, show_progress_bar=False)
        if isinstance(vecs, np.ndarray):
            return vecs.tolist()
        return [list(v) for v in vecs]


class OpenAIBackend:
    """OpenAI embeddings API, selected with an ``openai:<model>`` id."""

    def __init__(self, model_name: str, client=None):
        self.model_name = model_name
        self._client = client

    def encode(self, texts: List[str]) -> List[List[float]]:
        client = self._client or get_openai_client()
        response = client.embeddings.create(model=self.model_name, input=list(texts))
        # the API does not promise response order
        data = sorted(response.data, key=lambda d: d.index)
        return [d.embedding for d in data]


class Embedder:
    """
    Batches texts through a backend and checks what comes back.

    Batches run on a thread pool (in parallel when ``max_workers > 1``) and
    are gathered in submission order, so ``result[i]`` is the vector of
    ``texts[i]``. The whole call is all-or-nothing: a failed batch, a wrong
    count or dimension, or running past ``timeout`` raises EmbeddingError.
    """

    def __init__(self, backend, dimension: int, batch_size: int = 32, timeout: float = 60.0, max_workers: int = 1):
        if dimension <= 0 or batch_size <= 0 or max_workers <= 0:
            raise ValueError("dimension, batch_size and max_workers must be positive")
        self.backend = backend
        self.dimension = dimension
        self.batch_size = batch_size
        self.timeout = timeout
        self.max_workers = max_workers

    @property
    def model_name(self) -> str:
        return getattr(self.backend, "model_name", type(self.backend).__name__)

    def _encode_batch(self, batch: List[str]) -> List[List[float]]:
        vectors = self.backend.encode(batch)
        if len(vectors) != len(batch):
            raise EmbeddingError(f"Model returned {len(vectors)} vectors for {len(batch)} texts")
        out = []
        for vec in vectors:
            vec = [float(x) for x in vec]
            if len(vec) != self.dimension:
                raise EmbeddingError(f"Expected {self.dimension} dimensions, got {len(vec)}")
            out.append(vec)
        return out

    def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        texts = list(texts)
        if not texts:
            return []

        batches = [texts[i:i + self.batch_size] for i in range(0, len(texts), self.batch_size)]
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(batches)))
        deadline = monotonic() + self.timeout
        vectors: List[List[float]] = []
        try:
            futures = [executor.submit(self._encode_batch, batch) for batch in batches]
            for future in futures:
                vectors.extend(future.result(timeout=max(0.0, deadline - monotonic())))
        except concurrent.futures.TimeoutError as e:
            raise EmbeddingError(f"Embedding timed out after {self.timeout}s") from e
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding model call failed: {e}") from e
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.debug("Embedded texts", count=len(vectors), batches=len(batches), model=self.model_name)
        return vectors

    def embed_query(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed an empty query")
        return self.embed_documents([text])[0]


def build_embedder(app_settings: Settings = settings) -> Embedder:
    model = app_settings.EMBED_MODEL
    if model.startswith(OPENAI_PREFIX):
        backend = OpenAIBackend(model[len(OPENAI_PREFIX):])
    else:
        backend = SentenceTransformerBackend(model)
    return Embedder(
        backend,
        dimension=app_settings.EMBED_DIM,
        batch_size=app_settings.EMBED_BATCH_SIZE,
        timeout=app_settings.EMBED_TIMEOUT_SECONDS,
        max_workers=app_settings.EMBED_MAX_WORKERS,
    )


_embedder = None


def get_embedder() -> Embedder:
    global _embedder
    if _embedder is None:
        _embedder = build_embedder()
    return _embedder


def preload_model() -> Embedder:
    """Preload the embedding model on startup to avoid first-request delay."""
    embedder = get_embedder()
    embedder.embed_query("test")
    logger.info("Embedding model loaded", model=embedder.model_name, dimension=embedder.dimension)
    return embedder
