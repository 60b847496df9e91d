"""Capability interfaces for the collaborators used by the chat orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Union

from src.models import RequestOverrides, SupportingContentRecord, SupportingImageRecord


@dataclass(slots=True)
class ImagePart:
    """Image attachment inside a multimodal chat turn."""

    url: str


ContentPart = Union[str, ImagePart]


@dataclass(slots=True)
class ChatTurn:
    """One message sent to a completion model; content is text or a list of parts."""

    role: str
    content: Union[str, list[ContentPart]]


@dataclass(slots=True)
class ExecutionSettings:
    """Sampling parameters for a single completion call."""

    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    stop_sequences: list[str] = field(default_factory=list)


@dataclass(slots=True)
class VisionVector:
    """Vector produced by a vision embedding model."""

    vector: list[float]
    model: str


class Retriever(Protocol):
    def query_documents(
        self,
        query: Optional[str],
        embedding: Optional[Sequence[float]],
        overrides: Optional[RequestOverrides],
    ) -> list[SupportingContentRecord]: ...

    def query_images(
        self,
        query: Optional[str],
        embedding: Optional[Sequence[float]],
        overrides: Optional[RequestOverrides],
    ) -> list[SupportingImageRecord]: ...


class Embedder(Protocol):
    def embed_text(self, text: str) -> list[float]: ...


class Vectorizer(Protocol):
    def vectorize_text(self, text: str) -> VisionVector: ...


class Completer(Protocol):
    def complete(self, turns: Sequence[ChatTurn], settings: Optional[ExecutionSettings] = None) -> str: ...


class TokenIssuer(Protocol):
    def get_token(self, scopes: Sequence[str]) -> str: ...
