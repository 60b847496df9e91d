"""Gemini embedding and vision vectorisation services."""

from __future__ import annotations

import logging
from typing import Iterable, List

import google.generativeai as genai

from src.components.interfaces import VisionVector
from src.config.settings import get_gemini_settings
from src.utils.exceptions import GeminiConfigurationError, GeminiEmbeddingError

logger = logging.getLogger(__name__)


class GeminiEmbeddingService:
    """Encapsulates interactions with Google Gemini embedding endpoints."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        embedding_model: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        settings = get_gemini_settings()

        self._api_key = api_key or settings.api_key
        self._model = embedding_model or settings.embedding_model
        self._request_timeout = settings.resolved_timeout(request_timeout)

        if not self._api_key:
            raise GeminiConfigurationError(
                "Missing Google Gemini API key. Set GOOGLE_API_KEY in the environment or pass it explicitly."
            )

        if not self._model:
            raise GeminiConfigurationError("Embedding model must be provided for Gemini embeddings.")

        genai.configure(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate an embedding vector for a single text snippet."""

        if text is None:
            raise ValueError("Text must not be None.")

        normalized = text.strip()
        if not normalized:
            raise ValueError("Text must not be empty or only whitespace.")

        request_options = {"timeout": self._request_timeout} if self._request_timeout > 0 else None

        try:
            response = genai.embed_content(
                model=self._model,
                content=normalized,
                task_type="retrieval_query",
                request_options=request_options,
            )
        except Exception as exc:
            raise GeminiEmbeddingError("Gemini embedding request failed.") from exc

        vector = self._extract_embedding(response)
        logger.debug("Embedded %s characters into %s dimensions with %s", len(normalized), len(vector), self._model)
        return vector

    @staticmethod
    def _extract_embedding(response) -> List[float]:
        if response is None:
            raise GeminiEmbeddingError("Gemini response was empty.")

        embedding = response.get("embedding") if isinstance(response, dict) else None
        if embedding is None:
            raise GeminiEmbeddingError("Gemini response did not contain an embedding.")

        if isinstance(embedding, dict):
            values = embedding.get("values")
        else:
            values = embedding

        if not isinstance(values, Iterable):
            raise GeminiEmbeddingError("Gemini embedding payload is malformed.")

        vector = [float(value) for value in values]
        if not vector:
            raise GeminiEmbeddingError("Gemini embedding vector is empty.")

        return vector


class GeminiVisionService(GeminiEmbeddingService):
    """Vectorises text into the embedding space used by the image index."""

    def __init__(self, *, api_key: str | None = None, vision_model: str | None = None) -> None:
        model = vision_model or get_gemini_settings().vision_embedding_model
        if not model:
            raise GeminiConfigurationError(
                "Vision embedding model is not configured. Set VISION_EMBEDDING_MODEL to enable image retrieval."
            )
        super().__init__(api_key=api_key, embedding_model=model)

    def vectorize_text(self, text: str) -> VisionVector:
        """Return the vision-space vector for a text query."""

        return VisionVector(vector=self.embed_text(text), model=self.model)
