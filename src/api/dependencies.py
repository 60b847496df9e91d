"""Dependency wiring for the FastAPI application."""

from __future__ import annotations

import logging
from functools import lru_cache

from src.components.chroma_search import ChromaSearchService
from src.components.examples import ExamplePrompts
from src.components.gemini_embedding import GeminiEmbeddingService, GeminiVisionService
from src.components.read_retrieve_read import ReadRetrieveReadChatService
from src.components.token_issuer import GoogleCredentialTokenIssuer
from src.config.settings import get_gemini_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_chat_service() -> ReadRetrieveReadChatService:
    """Provide a singleton chat service instance for the API layer."""

    embedder = GeminiEmbeddingService()

    if get_gemini_settings().vision_enabled:
        logger.info("Vision embedding model configured; image retrieval enabled.")
        vision = GeminiVisionService()
        return ReadRetrieveReadChatService(
            retriever=ChromaSearchService(embedder=embedder, image_embedder=vision),
            embedder=embedder,
            vectorizer=vision,
            token_issuer=GoogleCredentialTokenIssuer(),
        )

    return ReadRetrieveReadChatService(
        retriever=ChromaSearchService(embedder=embedder),
        embedder=embedder,
    )


@lru_cache(maxsize=1)
def get_example_prompts() -> ExamplePrompts:
    """Provide the example questions shown before the first message."""

    return ExamplePrompts()
