"""Configuration helpers."""

from .settings import (
    ModelRoutingSettings,
    ObservabilitySettings,
    OrchestratorSettings,
    Settings,
    get_settings,
)

__all__ = [
    "ModelRoutingSettings",
    "ObservabilitySettings",
    "OrchestratorSettings",
    "Settings",
    "get_settings",
]
