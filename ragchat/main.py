"""
Main FastAPI application entry point.
Responsibilities: App setup, router registration, error translation, startup hooks.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .db.migrations import init_db
from .embedding import preload_model
from .errors import RagChatError
from .logging_config import logger
from .routes import chat, documents, health, models, prompts
from .routes import settings as settings_routes

# -------------------------------------------------
# App setup
# -------------------------------------------------

app = FastAPI(title="RAG Chat", version="0.1.0")

app.include_router(documents.router)
app.include_router(prompts.router)
app.include_router(settings_routes.router)
app.include_router(chat.router)
app.include_router(models.router)
app.include_router(health.router)


@app.exception_handler(RagChatError)
async def ragchat_error_handler(request: Request, exc: RagChatError):
    """Only place where error kinds become generic user-facing messages."""
    logger.warning(
        "Request failed",
        path=request.url.path,
        kind=exc.kind.value,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_message, "kind": exc.kind.value},
    )


@app.on_event("startup")
async def startup_event():
    """Initialize database schema and the embedding model on startup."""
    logger.info("Initializing database...", app=settings.APP_NAME)
    init_db()

    logger.info("Preloading embedding model...", model=settings.EMBED_MODEL)
    preload_model()
    logger.info("Embedding model ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Application shutting down")
