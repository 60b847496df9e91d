"""Chroma-backed search over the document and image collections."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import chromadb
from chromadb.api import ClientAPI
from chromadb.api.models.Collection import Collection

from src.components.gemini_embedding import GeminiEmbeddingService, GeminiVisionService
from src.components.interfaces import Embedder
from src.config.settings import get_chroma_settings, get_gemini_settings
from src.models import RequestOverrides, SupportingContentRecord, SupportingImageRecord
from src.utils.exceptions import ChromaConfigurationError, ChromaOperationError

logger = logging.getLogger(__name__)

QueryEmbedder = Callable[[str], Sequence[float]]

DEFAULT_TOP = 3
HYBRID_ALPHA = 0.5
MAX_CAPTION_SENTENCES = 3
CAPTION_SEPARATOR = " . "

_TERM_PATTERN = re.compile(r"\w+", re.UNICODE)
_SENTENCE_PATTERN = re.compile(r"(?<=[.!?])\s+")


@dataclass(slots=True)
class IndexedDocument:
    """A document chunk as stored in the documents collection."""

    id: str
    title: str
    content: str
    embedding: Sequence[float]
    category: Optional[str] = None


@dataclass(slots=True)
class IndexedImage:
    """An image reference as stored in the images collection."""

    id: str
    title: str
    url: str
    embedding: Sequence[float]


@dataclass(slots=True)
class SearchHit:
    """A single match returned from a Chroma query."""

    id: str
    text: str
    metadata: Dict[str, Any]
    score: float


def build_exclusion_filter(category: Optional[str]) -> Optional[Dict[str, Any]]:
    """Translate an excluded category into a Chroma ``where`` clause."""

    if not category:
        return None
    return {"category": {"$ne": category}}


def describe_filter(category: Optional[str]) -> Optional[str]:
    """Return the filter in its textual ``category ne '<value>'`` form."""

    if not category:
        return None
    return f"category ne '{category}'"


def merge_hits(
    vector_hits: List[SearchHit],
    text_hits: List[SearchHit],
    *,
    alpha: float = HYBRID_ALPHA,
    top: int = DEFAULT_TOP,
) -> List[SearchHit]:
    """Combine vector and text results into a single ranking."""

    for hits in (vector_hits, text_hits):
        if hits:
            scores = [hit.score for hit in hits]
            lo, hi = min(scores), max(scores)
            spread = hi - lo if hi != lo else 1.0
            for hit in hits:
                hit.score = (hit.score - lo) / spread

    combined: Dict[str, SearchHit] = {}
    for hit in vector_hits:
        combined[hit.id] = hit

    for hit in text_hits:
        if hit.id in combined:
            combined[hit.id].score = alpha * combined[hit.id].score + (1 - alpha) * hit.score
        else:
            combined[hit.id] = hit

    ranked = sorted(combined.values(), key=lambda item: item.score, reverse=True)
    return ranked[:top]


def _terms(text: str) -> set[str]:
    return {term for term in _TERM_PATTERN.findall(text.lower()) if len(term) > 2}


def rerank_by_overlap(hits: List[SearchHit], query: str) -> List[SearchHit]:
    """Order hits by how many query terms their text shares, keeping ties stable."""

    query_terms = _terms(query)
    if not query_terms:
        return hits
    return sorted(hits, key=lambda hit: len(query_terms & _terms(hit.text)), reverse=True)


def extract_captions(text: str, query: Optional[str]) -> str:
    """Return the sentences of ``text`` most related to ``query`` as a caption."""

    sentences = [sentence.strip().rstrip(".!?").rstrip() for sentence in _SENTENCE_PATTERN.split(text)]
    sentences = [sentence for sentence in sentences if sentence]
    if not sentences:
        return text

    query_terms = _terms(query) if query else set()
    if query_terms:
        scored = [(len(query_terms & _terms(sentence)), index) for index, sentence in enumerate(sentences)]
        best = sorted((item for item in scored if item[0] > 0), key=lambda item: item[0], reverse=True)
        chosen = sorted(index for _, index in best[:MAX_CAPTION_SENTENCES])
        if chosen:
            return CAPTION_SEPARATOR.join(sentences[index] for index in chosen)

    return CAPTION_SEPARATOR.join(sentences[:MAX_CAPTION_SENTENCES])


class ChromaSearchService:
    """Search the document and image collections for the chat orchestration."""

    def __init__(
        self,
        *,
        client: Optional[ClientAPI] = None,
        collection_name: Optional[str] = None,
        image_collection_name: Optional[str] = None,
        embedder: Optional[Embedder] = None,
        image_embedder: Optional[Embedder] = None,
    ) -> None:
        settings = get_chroma_settings()

        # Collections hold Gemini vectors; query text is never handed to Chroma to embed.
        self._embedder = embedder or GeminiEmbeddingService()
        if image_embedder is None and get_gemini_settings().vision_enabled:
            image_embedder = GeminiVisionService()
        self._image_embedder = image_embedder

        self._client = client or self._build_client(settings)
        self._collection_metadata = settings.metadata
        self._documents = self._get_or_create_collection(
            collection_name or settings.collection_name, metadata=self._collection_metadata
        )
        self._images = self._get_or_create_collection(
            image_collection_name or settings.image_collection_name, metadata=self._collection_metadata
        )

    @property
    def documents(self) -> Collection:
        return self._documents

    @property
    def images(self) -> Collection:
        return self._images

    def query_documents(
        self,
        query: Optional[str],
        embedding: Optional[Sequence[float]],
        overrides: Optional[RequestOverrides],
    ) -> List[SupportingContentRecord]:
        """Return the top documents for the query text and/or embedding."""

        overrides = overrides or RequestOverrides()
        where = build_exclusion_filter(overrides.exclude_category)
        if where:
            logger.debug("Applying document filter: %s", describe_filter(overrides.exclude_category))

        hits = self._search(
            self._documents,
            query,
            embedding,
            top=overrides.top,
            where=where,
            embed_query=self._embedder.embed_text,
        )
        if overrides.semantic_ranker and query:
            hits = rerank_by_overlap(hits, query)

        records: List[SupportingContentRecord] = []
        for hit in hits:
            content = extract_captions(hit.text, query) if overrides.semantic_captions else hit.text
            records.append(SupportingContentRecord(title=str(hit.metadata.get("title") or hit.id), content=content))
        return records

    def query_images(
        self,
        query: Optional[str],
        embedding: Optional[Sequence[float]],
        overrides: Optional[RequestOverrides],
    ) -> List[SupportingImageRecord]:
        """Return the top images for the query text and/or vision embedding."""

        overrides = overrides or RequestOverrides()
        embed_query = None
        if embedding is None and self._image_embedder is not None:
            embed_query = self._image_embedder.embed_text
        elif embedding is None:
            raise ValueError("Image search needs a vision embedding or a configured vision embedder.")

        hits = self._search(self._images, query, embedding, top=overrides.top, where=None, embed_query=embed_query)

        records: List[SupportingImageRecord] = []
        for hit in hits:
            url = hit.metadata.get("url")
            if not url:
                logger.warning("Skipping image %s without a url", hit.id)
                continue
            records.append(SupportingImageRecord(title=str(hit.metadata.get("title") or hit.id), url=str(url)))
        return records

    def upsert_documents(self, documents: Sequence[IndexedDocument]) -> List[str]:
        """Create or update documents in the documents collection and return their IDs."""

        if not documents:
            return []

        metadatas = []
        for doc in documents:
            metadata: Dict[str, Any] = {"title": doc.title}
            if doc.category:
                metadata["category"] = doc.category
            metadatas.append(metadata)

        try:
            self._documents.upsert(
                ids=[doc.id for doc in documents],
                documents=[doc.content for doc in documents],
                metadatas=metadatas,
                embeddings=[list(doc.embedding) for doc in documents],
            )
        except Exception as exc:
            raise ChromaOperationError("Failed to upsert documents into Chroma.") from exc

        return [doc.id for doc in documents]

    def upsert_images(self, images: Sequence[IndexedImage]) -> List[str]:
        """Create or update image references in the images collection and return their IDs."""

        if not images:
            return []

        try:
            self._images.upsert(
                ids=[image.id for image in images],
                documents=[image.title for image in images],
                metadatas=[{"title": image.title, "url": image.url} for image in images],
                embeddings=[list(image.embedding) for image in images],
            )
        except Exception as exc:
            raise ChromaOperationError("Failed to upsert images into Chroma.") from exc

        return [image.id for image in images]

    def count(self) -> int:
        """Return the number of documents stored in the documents collection."""

        try:
            stats = self._documents.count()
        except Exception as exc:
            raise ChromaOperationError("Failed to fetch Chroma collection stats.") from exc

        if isinstance(stats, dict):
            return int(stats.get("count", 0))
        return int(stats)

    def _search(
        self,
        collection: Collection,
        query: Optional[str],
        embedding: Optional[Sequence[float]],
        *,
        top: int,
        where: Optional[Dict[str, Any]],
        embed_query: Optional[QueryEmbedder],
    ) -> List[SearchHit]:
        if not query and embedding is None:
            raise ValueError("Either a query string or an embedding vector is required.")

        vector_hits: List[SearchHit] = []
        text_hits: List[SearchHit] = []
        if embedding is not None:
            vector_hits = self._query(collection, top=top, where=where, query_embeddings=[list(embedding)])
        if query and embed_query is not None:
            query_vector = list(embed_query(query))
            text_hits = self._query(collection, top=top, where=where, query_embeddings=[query_vector])

        if vector_hits and text_hits:
            return merge_hits(vector_hits, text_hits, top=top)
        return (vector_hits or text_hits)[:top]

    @staticmethod
    def _query(
        collection: Collection,
        *,
        top: int,
        where: Optional[Dict[str, Any]],
        **query_kwargs: Any,
    ) -> List[SearchHit]:
        try:
            result = collection.query(
                n_results=top,
                where=where,
                include=["documents", "metadatas", "distances"],
                **query_kwargs,
            )
        except Exception as exc:
            raise ChromaOperationError("Failed to execute query against Chroma.") from exc

        return ChromaSearchService._build_hits(result)

    def _build_client(self, settings) -> ClientAPI:
        headers: Dict[str, str] = {}
        if settings.tenant:
            headers["X-Chroma-Tenant"] = settings.tenant
        if settings.auth_token:
            headers["Authorization"] = f"Bearer {settings.auth_token}"

        try:
            return chromadb.HttpClient(
                host=settings.host,
                port=settings.port,
                ssl=settings.ssl,
                headers=headers or None,
            )
        except Exception as exc:
            raise ChromaConfigurationError(f"Failed to initialise Chroma client at {settings.base_url()}.") from exc

    def _get_or_create_collection(self, name: str, *, metadata: Dict[str, Any]) -> Collection:
        try:
            return self._client.get_or_create_collection(name=name, metadata=metadata or None)
        except Exception as exc:
            raise ChromaOperationError(f"Failed to get or create Chroma collection '{name}'.") from exc

    @staticmethod
    def _build_hits(response: Dict[str, Any]) -> List[SearchHit]:
        ids = ChromaSearchService._flatten(response.get("ids", []))
        documents = ChromaSearchService._flatten(response.get("documents", []))
        metadatas = ChromaSearchService._flatten(response.get("metadatas", []))
        distances = ChromaSearchService._flatten(response.get("distances", []))

        hits: List[SearchHit] = []
        for index, item_id in enumerate(ids):
            text = documents[index] if index < len(documents) else ""
            metadata = metadatas[index] if index < len(metadatas) else None
            distance = distances[index] if index < len(distances) else 0.0

            hits.append(
                SearchHit(
                    id=str(item_id),
                    text=str(text) if text is not None else "",
                    metadata=metadata if isinstance(metadata, dict) else {},
                    score=-float(distance if distance is not None else 0.0),
                )
            )

        return hits

    @staticmethod
    def _flatten(value: Any) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, list):
            if value and isinstance(value[0], list):
                return [item for sub in value for item in sub]
            return value
        if isinstance(value, tuple):
            return list(value)
        return [value]
