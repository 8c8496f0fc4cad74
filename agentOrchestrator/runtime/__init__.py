"""Runtime wiring."""

from .app import build_orchestrator
from .model_resolver import build_model_resolver, has_credentials, resolve_model_configs

__all__ = ["build_orchestrator", "build_model_resolver", "has_credentials", "resolve_model_configs"]
