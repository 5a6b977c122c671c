import asyncio
import json
from typing import List

import aiohttp

from .config import settings
from .logging_config import logger


async def stream_ollama_chat(model: str, messages: list):
    """
    Stream chat completion tokens from Ollama.
    Yields: {"type":"delta", "text": "..."}
    """
    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{settings.OLLAMA_URL}/api/chat",
            json={"model": model, "messages": messages, "stream": True},
        ) as resp:
            resp.raise_for_status()
            async for line in resp.content:
                line = line.decode().strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed Ollama line", line=line[:100])
                    continue
                if "message" in data and "content" in data["message"]:
                    yield {"type": "delta", "text": data["message"]["content"]}


async def list_ollama_models(timeout_sec: float = 5.0) -> List[dict]:
    """
    Models installed on the Ollama server (``/api/tags``).
    Returns an empty list when Ollama is unreachable.
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{settings.OLLAMA_URL}/api/tags",
                timeout=aiohttp.ClientTimeout(total=timeout_sec),
            ) as r:
                r.raise_for_status()
                data = await r.json()
                return data.get("models", [])
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning("Ollama not reachable", url=settings.OLLAMA_URL, error=str(e))
        return []
