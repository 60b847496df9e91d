"""Domain-level data models."""

from .chat import (
    ChatAppResponse,
    ChatMessage,
    ChatRequest,
    ExamplesResponse,
    RequestOverrides,
    ResponseChoice,
    ResponseContext,
    ResponseMessage,
    RetrievalMode,
    SupportingContentRecord,
    SupportingImageRecord,
    Thoughts,
)

__all__ = [
    "ChatAppResponse",
    "ChatMessage",
    "ChatRequest",
    "ExamplesResponse",
    "RequestOverrides",
    "ResponseChoice",
    "ResponseContext",
    "ResponseMessage",
    "RetrievalMode",
    "SupportingContentRecord",
    "SupportingImageRecord",
    "Thoughts",
]
