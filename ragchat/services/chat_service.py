"""
Chat service.
Builds the message list (system message, optional RAG context) and streams
the model response as Server-Sent Events.
"""
import json
from time import perf_counter
from typing import AsyncGenerator, Dict, List, NamedTuple

from fastapi.concurrency import iterate_in_threadpool, run_in_threadpool
from sqlalchemy.orm import Session

from ..config import settings
from ..embedding import Embedder
from ..logging_config import logger
from ..openai_client import get_openai_client
from ..ollama_client import stream_ollama_chat
from ..retrieval import build_context, build_rag_prompt, search_similar
from ..schemas import ChatBody
from ..utils.helpers import dedupe_sources
from .model_service import resolve_model
from .settings_service import get_settings


class PreparedChat(NamedTuple):
    provider: str
    model_name: str
    messages: List[Dict]
    sources: List[Dict]


def _sse(event: Dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


def prepare_chat(db: Session, embedder: Embedder, body: ChatBody) -> PreparedChat:
    """
    Resolve the model and build the messages for one chat request.

    The system message is the request override or the stored settings. In
    RAG mode the last user message is replaced by the augmented prompt.

    Raises:
        RetrievalError: RAG mode and retrieval failed
    """
    provider, model_name = resolve_model(body.model)
    messages = [{"role": m.role, "content": m.content} for m in body.messages]

    system = body.settings_system_message
    if system is None:
        stored = get_settings(db)
        system = stored.system if stored else None

    sources = []
    if body.rag_mode:
        last_user = next((i for i in range(len(messages) - 1, -1, -1) if messages[i]["role"] == "user"), None)
        if last_user is not None:
            question = messages[last_user]["content"]
            results = search_similar(db, embedder, question, body.top_k or settings.RETRIEVAL_TOP_K)
            if results:
                messages[last_user] = {
                    "role": "user",
                    "content": build_rag_prompt(question, build_context(results)),
                }
                sources = dedupe_sources(results)
            logger.info("Augmented chat prompt", question=question[:100], results=len(results))

    if system:
        messages.insert(0, {"role": "system", "content": system})

    return PreparedChat(provider, model_name, messages, sources)


async def stream_chat_response(prepared: PreparedChat) -> AsyncGenerator[str, None]:
    """
    Yields:
        SSE-formatted event strings: meta, delta..., final, done
    """
    yield _sse({"type": "meta", "sources": prepared.sources})

    t = perf_counter()
    full_response = ""
    if prepared.provider == "openai":
        stream = _stream_openai(prepared.model_name, prepared.messages)
    else:
        stream = _stream_ollama(prepared.model_name, prepared.messages)

    try:
        async for delta in stream:
            full_response += delta
            yield _sse({"type": "delta", "text": delta})
    except Exception as e:
        # headers are already sent; report in-band
        logger.error("Chat model stream failed", provider=prepared.provider, model=prepared.model_name, exc_info=e)
        yield _sse({"type": "error", "message": "Error generating response"})
        yield 'data: {"type":"done"}\n\n'
        return

    logger.info(
        "Received response from LLM",
        provider=prepared.provider,
        model=prepared.model_name,
        seconds=round(perf_counter() - t, 2),
    )
    yield _sse({
        "type": "final",
        "text": full_response.strip(),
        "grounded": bool(prepared.sources),
        "sources": prepared.sources,
        "model_provider": prepared.provider,
        "model_name": prepared.model_name,
    })
    yield 'data: {"type":"done"}\n\n'


async def _stream_openai(model_name: str, messages: List[Dict]) -> AsyncGenerator[str, None]:
    logger.info("Sent request to OpenAI API", model=model_name)
    # the client is synchronous; keep both the request and the iteration off the event loop
    stream_response = await run_in_threadpool(
        get_openai_client().chat.completions.create,
        model=model_name,
        messages=messages,
        temperature=0.2,
        stream=True,
    )
    async for chunk in iterate_in_threadpool(stream_response):
        delta = chunk.choices[0].delta.content or ""
        if delta:
            yield delta


async def _stream_ollama(model_name: str, messages: List[Dict]) -> AsyncGenerator[str, None]:
    logger.info("Sent request to Ollama model", model=model_name)
    async for delta_event in stream_ollama_chat(model_name, messages):
        if delta_event.get("type") == "delta":
            yield delta_event["text"]
