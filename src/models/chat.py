"""Pydantic models describing chat API contracts."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either casing on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RetrievalMode(str, Enum):
    """Selects whether search is driven by text, a vector embedding, or both."""

    TEXT = "Text"
    VECTOR = "Vector"
    HYBRID = "Hybrid"


class ChatMessage(_CamelModel):
    """A single turn of the conversation history."""

    role: str = Field(pattern="^(user|assistant)$")
    content: str

    @property
    def is_user(self) -> bool:
        return self.role == "user"


class RequestOverrides(_CamelModel):
    """Optional per-request retrieval and generation settings."""

    top: int = Field(default=3, gt=0, le=50)
    retrieval_mode: RetrievalMode = RetrievalMode.HYBRID
    semantic_captions: bool = False
    semantic_ranker: bool = False
    exclude_category: Optional[str] = None
    temperature: Optional[float] = Field(default=0.7, ge=0.0, le=2.0)
    suggest_followup_questions: bool = False


class ChatRequest(_CamelModel):
    """Inbound payload for a chat turn."""

    history: list[ChatMessage] = Field(min_length=1)
    overrides: Optional[RequestOverrides] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "history": [
                    {"role": "user", "content": "¿Hay algun candidato con más de 3 años de experiencia en Java?"}
                ],
                "overrides": {
                    "top": 3,
                    "retrievalMode": "Hybrid",
                    "excludeCategory": "archivado",
                    "suggestFollowupQuestions": True,
                },
            }
        },
    )


class SupportingContentRecord(_CamelModel):
    """Document snippet returned by the search index."""

    title: str
    content: str


class SupportingImageRecord(_CamelModel):
    """Image reference returned by the image search index."""

    title: str
    url: str


class Thoughts(_CamelModel):
    """Model-reported reasoning attached to an answer."""

    title: str
    description: str
    props: Optional[list[dict[str, Any]]] = None


class ResponseMessage(_CamelModel):
    role: str
    content: str


class ResponseContext(_CamelModel):
    """Supporting material for one answer."""

    data_points_content: list[SupportingContentRecord] = Field(default_factory=list)
    data_points_images: Optional[list[SupportingImageRecord]] = None
    followup_questions: list[str] = Field(default_factory=list)
    thoughts: list[Thoughts] = Field(default_factory=list)


class ResponseChoice(_CamelModel):
    index: int
    message: ResponseMessage
    context: ResponseContext
    citation_base_url: str


class ChatAppResponse(_CamelModel):
    """Outbound payload for chat responses."""

    choices: list[ResponseChoice]

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "choices": [
                    {
                        "index": 0,
                        "message": {
                            "role": "assistant",
                            "content": "Ana tiene 5 años de experiencia en Java [cv-ana.pdf].",
                        },
                        "context": {
                            "dataPointsContent": [
                                {"title": "cv-ana.pdf", "content": "Desarrolladora Java desde 2019..."}
                            ],
                            "dataPointsImages": None,
                            "followupQuestions": [],
                            "thoughts": [
                                {"title": "Thoughts", "description": "Usé cv-ana.pdf.", "props": None}
                            ],
                        },
                        "citationBaseUrl": "https://storage.example.com/content",
                    }
                ]
            }
        },
    )


class ExamplesResponse(BaseModel):
    """Example questions offered to the user interface."""

    examples: list[str]
