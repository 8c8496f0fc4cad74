"""Default model resolver wiring using environment-derived settings.

This module converts Pydantic settings into actual model instances. It builds
a ModelResolver function that creates ChatOpenAI instances on demand.

Key Functions:
    - resolve_model_configs(): Extract model slot configs from settings
    - has_credentials(): Whether a slot can actually be called
    - build_model_resolver(): Create a resolver function that returns model instances

Agents may pin a `provider` (a slot name such as "base" or "chat") and/or a
`model` id. The slot supplies credentials, the pinned model id overrides the
slot's default id.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, TypedDict

from langchain_openai import ChatOpenAI

from agentOrchestrator.agents import ModelResolver
from agentOrchestrator.config import Settings


class ModelConfig(TypedDict):
    id: str
    api_key: Optional[str]
    base_url: Optional[str]


DEFAULT_SLOT = "chat"


def resolve_model_configs(settings: Settings) -> Dict[str, ModelConfig]:
    """Build normalized model configs (id + credentials) from settings.

    Returns:
        Dict mapping slot names ("base", "chat") to ModelConfig dicts
    """
    return {
        "base": {
            "id": settings.models.base,
            # Routing falls back to the chat credentials when base has none
            "api_key": settings.models.base_api_key or settings.models.chat_api_key,
            "base_url": settings.models.base_base_url or settings.models.chat_base_url,
        },
        "chat": {
            "id": settings.models.chat,
            "api_key": settings.models.chat_api_key,
            "base_url": settings.models.chat_base_url,
        },
    }


def has_credentials(model_configs: Dict[str, ModelConfig], slot: str = DEFAULT_SLOT) -> bool:
    config = model_configs.get(slot)
    return bool(config and config["api_key"])


def _chat_kwargs(model: str, api_key: Optional[str], base_url: Optional[str]) -> Dict[str, object]:
    if not api_key:
        raise RuntimeError(f"Missing API key for model {model}; configure it in .env.")
    kwargs: Dict[str, object] = {"model": model, "api_key": api_key, "temperature": 0.2}
    if base_url:
        kwargs["base_url"] = base_url
    return kwargs


def build_model_resolver(
    model_configs: Dict[str, ModelConfig],
    default_slot: str = DEFAULT_SLOT,
) -> ModelResolver:
    """Construct a resolver that returns ChatOpenAI-compatible clients.

    The resolver uses lazy instantiation - models are only created when requested.

    Raises (from the returned resolver):
        KeyError: If the requested provider slot is not configured
        RuntimeError: If the slot has no API key

    Example:
        >>> resolver = build_model_resolver(resolve_model_configs(get_settings()))
        >>> router = resolver(provider="base")
        >>> pinned = resolver("gpt-4o", provider="chat")
    """
    if default_slot not in model_configs:
        raise KeyError(f"Default model slot '{default_slot}' is not configured.")

    factories: Dict[str, Callable[[Optional[str]], ChatOpenAI]] = {}
    for slot, config in model_configs.items():
        factories[slot] = lambda model_id, cfg=config: ChatOpenAI(
            **_chat_kwargs(model_id or cfg["id"], cfg["api_key"], cfg["base_url"])
        )

    def resolver(model_id: Optional[str] = None, provider: Optional[str] = None):
        slot = provider or default_slot
        if slot not in factories:
            raise KeyError(f"Model provider '{slot}' is not configured.")
        return factories[slot](model_id)

    return resolver
