"""Shared FastAPI dependencies."""
from typing import Generator, Optional

from fastapi import Form
from sqlalchemy.orm import Session

from .config import IngestionOptions, settings
from .db import SessionLocal
from .embedding import Embedder, get_embedder as _get_embedder


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_embedder() -> Embedder:
    return _get_embedder()


def get_ingestion_options(save_raw: Optional[bool] = Form(None)) -> IngestionOptions:
    """Ingestion options from settings; the upload form may override ``save_raw``."""
    return IngestionOptions.from_settings(settings, save_raw=save_raw)
