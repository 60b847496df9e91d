"""API layer tests for the FastAPI chat application."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.api.app import app
from src.api.dependencies import get_chat_service, get_example_prompts
from src.components.examples import EXAMPLE_QUESTIONS, ExamplePrompts
from src.models import (
    ChatAppResponse,
    ResponseChoice,
    ResponseContext,
    ResponseMessage,
    RetrievalMode,
    SupportingContentRecord,
    Thoughts,
)
from src.utils.exceptions import (
    AnswerFormatError,
    ChatGenerationError,
    ChatValidationError,
    ChromaOperationError,
    GeminiEmbeddingError,
)


class StubChatService:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.response = ChatAppResponse(
            choices=[
                ResponseChoice(
                    index=0,
                    message=ResponseMessage(role="assistant", content="Ana sabe Java [cv-ana.pdf]. <<¿Y Python?>> "),
                    context=ResponseContext(
                        data_points_content=[SupportingContentRecord(title="cv-ana.pdf", content="Java")],
                        followup_questions=["¿Y Python?"],
                        thoughts=[Thoughts(title="Thoughts", description="Usé cv-ana.pdf.")],
                    ),
                    citation_base_url="https://storage.example.com/content",
                )
            ]
        )
        self.raise_error: Exception | None = None

    def reply(self, history, overrides=None):
        self.calls.append({"history": history, "overrides": overrides})
        if self.raise_error:
            raise self.raise_error
        return self.response


@pytest.fixture(autouse=True)
def override_chat_service():
    stub = StubChatService()
    app.dependency_overrides[get_chat_service] = lambda: stub
    app.dependency_overrides[get_example_prompts] = lambda: ExamplePrompts()
    yield stub
    app.dependency_overrides.clear()


def _client() -> TestClient:
    return TestClient(app)


def test_chat_success(override_chat_service):
    client = _client()
    payload = {
        "history": [{"role": "user", "content": "¿Quién sabe Java?"}],
        "overrides": {"top": 5, "retrievalMode": "Vector", "excludeCategory": "archivado", "suggestFollowupQuestions": True},
    }

    response = client.post("/chat", json=payload)

    assert response.status_code == HTTPStatus.OK
    choice = response.json()["choices"][0]
    assert choice["message"]["content"].startswith("Ana sabe Java")
    assert choice["context"]["dataPointsContent"][0]["title"] == "cv-ana.pdf"
    assert choice["context"]["dataPointsImages"] is None
    assert choice["context"]["followupQuestions"] == ["¿Y Python?"]
    assert choice["citationBaseUrl"] == "https://storage.example.com/content"

    call = override_chat_service.calls[0]
    assert call["history"][0].content == "¿Quién sabe Java?"
    overrides = call["overrides"]
    assert overrides.top == 5
    assert overrides.retrieval_mode is RetrievalMode.VECTOR
    assert overrides.exclude_category == "archivado"
    assert overrides.suggest_followup_questions is True


def test_chat_without_overrides_passes_none(override_chat_service):
    response = _client().post("/chat", json={"history": [{"role": "user", "content": "Hola"}]})

    assert response.status_code == HTTPStatus.OK
    assert override_chat_service.calls[0]["overrides"] is None


def test_chat_rejects_empty_history(override_chat_service):
    response = _client().post("/chat", json={"history": []})

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert not override_chat_service.calls


def test_chat_validation_error(override_chat_service):
    override_chat_service.raise_error = ChatValidationError("The conversation history contains no user question.")

    response = _client().post("/chat", json={"history": [{"role": "assistant", "content": "Hola"}]})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["detail"] == "The conversation history contains no user question."


@pytest.mark.parametrize(
    "error",
    [
        ChatGenerationError("Gemini timeout"),
        AnswerFormatError("Answer completion is not valid JSON."),
        GeminiEmbeddingError("Gemini embedding request failed."),
        ChromaOperationError("Failed to execute query against Chroma."),
    ],
)
def test_chat_upstream_errors_map_to_bad_gateway(override_chat_service, error):
    override_chat_service.raise_error = error

    response = _client().post("/chat", json={"history": [{"role": "user", "content": "Hola"}]})

    assert response.status_code == HTTPStatus.BAD_GATEWAY
    assert response.json()["detail"] == str(error)


def test_list_examples():
    response = _client().get("/chat/examples")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"examples": list(EXAMPLE_QUESTIONS)}
