from typing import Optional

from .config import settings

_client = None


def get_openai_client(api_key: Optional[str] = None):
    """Shared OpenAI client, created on first use so the key is only required by OpenAI callers."""
    global _client
    if _client is None:
        key = api_key or settings.OPENAI_API_KEY
        if not key:
            raise RuntimeError("OPENAI_API_KEY is not set. Put it in env or .env (server-side only).")
        from openai import OpenAI
        _client = OpenAI(api_key=key)
    return _client
