"""Integration tests against a running Chroma instance."""

from __future__ import annotations

import uuid

import pytest

from src.components.chroma_search import ChromaSearchService, IndexedDocument, IndexedImage
from src.models import RequestOverrides

pytestmark = pytest.mark.integration

DIMENSIONS = 768
KEYWORDS = ("java", "python", "organigrama")


def keyword_vector(text: str) -> list[float]:
    """Deterministic 768-dim stand-in for a Gemini embedding."""

    vector = [0.01] * DIMENSIONS
    lowered = text.lower()
    for position, keyword in enumerate(KEYWORDS):
        if keyword in lowered:
            vector[position] = 1.0
    return vector


class KeywordEmbedder:
    def embed_text(self, text: str) -> list[float]:
        return keyword_vector(text)


@pytest.fixture()
def live_search_service():
    """Provide a ChromaSearchService backed by throwaway collections on the live server."""

    suffix = uuid.uuid4().hex[:8]
    try:
        service = ChromaSearchService(
            collection_name=f"it-documents-{suffix}",
            image_collection_name=f"it-images-{suffix}",
            embedder=KeywordEmbedder(),
            image_embedder=KeywordEmbedder(),
        )
    except Exception as exc:  # pragma: no cover - executed only when service unavailable
        pytest.skip(f"Chroma service not available: {exc}")

    yield service

    for collection in (service.documents, service.images):
        try:
            service._client.delete_collection(collection.name)
        except Exception:  # pragma: no cover
            pass


def test_query_documents_excludes_category(live_search_service: ChromaSearchService):
    live_search_service.upsert_documents(
        [
            IndexedDocument(id="a", title="cv-ana.pdf", content="Java", embedding=[0.1, 0.2, 0.3], category="cv"),
            IndexedDocument(
                id="b", title="viejo.pdf", content="Java", embedding=[0.1, 0.2, 0.31], category="archivado"
            ),
        ]
    )

    records = live_search_service.query_documents(
        None, [0.1, 0.2, 0.3], RequestOverrides(top=2, exclude_category="archivado")
    )

    assert [record.title for record in records] == ["cv-ana.pdf"]
    assert live_search_service.count() == 2


def test_hybrid_query_against_gemini_sized_documents(live_search_service: ChromaSearchService):
    live_search_service.upsert_documents(
        [
            IndexedDocument(
                id="ana", title="cv-ana.pdf", content="Desarrolladora Java", embedding=keyword_vector("java")
            ),
            IndexedDocument(
                id="luis", title="cv-luis.pdf", content="Desarrollador Python", embedding=keyword_vector("python")
            ),
        ]
    )

    records = live_search_service.query_documents(
        "¿Quién sabe Java?", keyword_vector("java"), RequestOverrides(top=1, retrieval_mode="Hybrid")
    )

    assert [record.title for record in records] == ["cv-ana.pdf"]


def test_text_query_against_gemini_sized_documents(live_search_service: ChromaSearchService):
    live_search_service.upsert_documents(
        [
            IndexedDocument(
                id="luis", title="cv-luis.pdf", content="Desarrollador Python", embedding=keyword_vector("python")
            ),
        ]
    )

    records = live_search_service.query_documents("experiencia en Python", None, RequestOverrides(top=1))

    assert [record.title for record in records] == ["cv-luis.pdf"]


def test_query_images_returns_urls(live_search_service: ChromaSearchService):
    live_search_service.upsert_images(
        [IndexedImage(id="img", title="organigrama", url="https://storage.example.com/org.png", embedding=[0.5, 0.5])]
    )

    records = live_search_service.query_images(None, [0.5, 0.5], RequestOverrides(top=1))

    assert [(record.title, record.url) for record in records] == [
        ("organigrama", "https://storage.example.com/org.png")
    ]
