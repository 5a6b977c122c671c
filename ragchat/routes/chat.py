"""
Chat route.
Streams model output, optionally grounded in retrieved document chunks.
"""
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..deps import get_db, get_embedder
from ..embedding import Embedder
from ..schemas import ChatBody
from ..services.chat_service import prepare_chat, stream_chat_response

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def chat(body: ChatBody, db: Session = Depends(get_db), embedder: Embedder = Depends(get_embedder)):
    """
    Streaming chat endpoint using Server-Sent Events (SSE).

    Workflow:
    1. Resolve model/provider
    2. Add the system message from the request or stored settings
    3. In RAG mode, retrieve relevant chunks and augment the last question
    4. Stream the LLM response
    """
    # retrieval errors surface here, before the stream starts
    prepared = await run_in_threadpool(prepare_chat, db, embedder, body)
    return StreamingResponse(stream_chat_response(prepared), media_type="text/event-stream")
