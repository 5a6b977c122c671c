"""
Model service for LLM provider management.
Handles model resolution and listing available models.
"""
from typing import Tuple, Dict, List, Optional

from ..config import settings
from ..ollama_client import list_ollama_models

PROVIDERS = ("openai", "ollama")


def _split(model_string: Optional[str]) -> Optional[Tuple[str, str]]:
    if not model_string:
        return None
    provider, _, model_name = model_string.partition(":")
    if provider not in PROVIDERS or not model_name:
        return None
    return provider, model_name


def resolve_model(model_string: Optional[str] = None) -> Tuple[str, str]:
    """
    Resolve a model string to provider and model name.

    Args:
        model_string: Format "provider:model_name" (e.g., "openai:gpt-4o-mini")
                     or None for default

    Returns:
        Tuple of (provider, model_name)

    Examples:
        >>> resolve_model("ollama:qwen2.5:7b")
        ("ollama", "qwen2.5:7b")

        >>> resolve_model(None)
        ("ollama", "qwen2.5:3b")  # DEFAULT_CHAT_MODEL
    """
    return _split(model_string) or _split(settings.DEFAULT_CHAT_MODEL) or ("ollama", "qwen2.5:3b")


async def get_available_models() -> Dict[str, List[str]]:
    """
    All chat models grouped by provider.

    Example response:
    {
        "openai": ["gpt-4o-mini"],
        "ollama": ["qwen2.5:3b", "llama3.2:latest"]
    }
    """
    ollama_models = await list_ollama_models()
    return {
        "openai": [settings.OPENAI_MODEL] if settings.OPENAI_API_KEY else [],
        "ollama": [m.get("name") or m.get("model") for m in ollama_models],
    }
