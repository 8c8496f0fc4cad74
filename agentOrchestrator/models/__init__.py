"""Model access: completion service contract and default implementation."""

from .completion import (
    ChatModelCompletionService,
    CompletionRequest,
    CompletionResult,
    CompletionService,
)

__all__ = [
    "ChatModelCompletionService",
    "CompletionRequest",
    "CompletionResult",
    "CompletionService",
]
