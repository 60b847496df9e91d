"""Read-retrieve-read chat orchestration.

A reply is a straight sequence of collaborator calls:

1. embed the latest user question (unless retrieval is text only)
2. ask the model for a search query (unless retrieval is vector only)
3. search documents, and images when a vision vectorizer is configured
4. ask the model for a JSON ``{"answer", "thoughts"}`` grounded on the sources
5. optionally ask for three follow-up questions

Every failure aborts the reply; nothing is retried.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from src.components.chroma_search import ChromaSearchService
from src.components.gemini_completion import GeminiChatCompletion
from src.components.gemini_embedding import GeminiEmbeddingService
from src.components.interfaces import (
    ChatTurn,
    Completer,
    ContentPart,
    Embedder,
    ExecutionSettings,
    ImagePart,
    Retriever,
    TokenIssuer,
    Vectorizer,
)
from src.config.settings import ChatSettings, get_chat_settings
from src.models import (
    ChatAppResponse,
    ChatMessage,
    RequestOverrides,
    ResponseChoice,
    ResponseContext,
    ResponseMessage,
    RetrievalMode,
    SupportingContentRecord,
    SupportingImageRecord,
    Thoughts,
)
from src.utils.exceptions import (
    AnswerFormatError,
    ChatGenerationError,
    ChatValidationError,
    TokenAcquisitionError,
)

logger = logging.getLogger(__name__)

NO_SOURCE_PLACEHOLDER = "no source available."
DOCUMENT_SEPARATOR = "\r"


def build_document_context(documents: Sequence[SupportingContentRecord]) -> str:
    """Render retrieved documents as the source block of the answer prompt."""

    if not documents:
        return NO_SOURCE_PLACEHOLDER
    return DOCUMENT_SEPARATOR.join(f"{doc.title}:{doc.content}" for doc in documents)


def parse_answer(raw: str) -> tuple[str, str]:
    """Parse the answer completion into ``(answer, thoughts)``."""

    payload = _load_json(raw, "Answer")
    if not isinstance(payload, dict):
        raise AnswerFormatError("Answer completion must be a JSON object.")

    answer = payload.get("answer")
    if not isinstance(answer, str):
        raise AnswerFormatError("Failed to get answer")

    thoughts = payload.get("thoughts")
    if not isinstance(thoughts, str):
        raise AnswerFormatError("Failed to get thoughts")

    return answer, thoughts


def parse_followup_questions(raw: str) -> list[str]:
    """Parse the follow-up completion into a list of questions."""

    payload = _load_json(raw, "Follow-up")
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise AnswerFormatError("Follow-up completion must be a JSON array of strings.")
    return payload


def _load_json(raw: str, label: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AnswerFormatError(f"{label} completion is not valid JSON.") from exc


class ReadRetrieveReadChatService:
    """Answer the latest user question from retrieved sources."""

    def __init__(
        self,
        *,
        settings: ChatSettings | None = None,
        retriever: Retriever | None = None,
        embedder: Embedder | None = None,
        completer: Completer | None = None,
        vectorizer: Vectorizer | None = None,
        token_issuer: TokenIssuer | None = None,
        system_prompt: str | None = None,
    ) -> None:
        self._settings = settings or get_chat_settings()
        self._embedder = embedder or GeminiEmbeddingService()
        self._retriever = retriever or ChromaSearchService(embedder=self._embedder)
        self._completer = completer or GeminiChatCompletion(settings=self._settings)
        self._vectorizer = vectorizer
        self._token_issuer = token_issuer

        loaded_prompt = system_prompt if system_prompt is not None else self._load_system_prompt(
            self._settings.system_prompt_path
        )
        self._system_instruction = loaded_prompt or DEFAULT_SYSTEM_PROMPT

    def reply(
        self,
        history: Sequence[ChatMessage],
        overrides: Optional[RequestOverrides] = None,
    ) -> ChatAppResponse:
        """Produce the assistant reply for ``history``."""

        question = self._latest_question(history)
        retrieval_mode = overrides.retrieval_mode if overrides else RetrievalMode.HYBRID

        embedding: Optional[list[float]] = None
        if retrieval_mode != RetrievalMode.TEXT:
            embedding = self._embedder.embed_text(question)

        query: Optional[str] = None
        if retrieval_mode != RetrievalMode.VECTOR:
            query = self._rewrite_query(question)

        documents = self._retriever.query_documents(query, embedding, overrides)
        document_context = build_document_context(documents)

        images: Optional[list[SupportingImageRecord]] = None
        if self._vectorizer is not None:
            vision = self._vectorizer.vectorize_text(query or question)
            images = self._retriever.query_images(query, vision.vector, overrides)

        logger.info(
            "Retrieved %s documents and %s images (mode=%s)",
            len(documents),
            len(images) if images is not None else "no",
            retrieval_mode.value,
        )

        execution_settings = ExecutionSettings(
            max_tokens=self._settings.max_output_tokens,
            temperature=self._resolve_temperature(overrides),
            stop_sequences=[],
        )

        answer_turns = self._build_answer_turns(history, document_context, images)
        answer, thoughts = parse_answer(self._complete(answer_turns, execution_settings, "answer"))

        followup_questions: list[str] = []
        if overrides is not None and overrides.suggest_followup_questions:
            followup_questions = self._generate_followup_questions(answer, execution_settings)
            for followup in followup_questions:
                answer += f" <<{followup}>> "

        context = ResponseContext(
            data_points_content=[
                SupportingContentRecord(title=doc.title, content=doc.content) for doc in documents
            ],
            data_points_images=(
                [SupportingImageRecord(title=image.title, url=image.url) for image in images]
                if images is not None
                else None
            ),
            followup_questions=followup_questions,
            thoughts=[Thoughts(title="Thoughts", description=thoughts)],
        )

        choice = ResponseChoice(
            index=0,
            message=ResponseMessage(role="assistant", content=answer),
            context=context,
            citation_base_url=self._settings.citation_base_url(),
        )
        return ChatAppResponse(choices=[choice])

    @staticmethod
    def _latest_question(history: Sequence[ChatMessage]) -> str:
        for message in reversed(history):
            if message.is_user:
                question = message.content.strip()
                if not question:
                    raise ChatValidationError("Query text must not be empty.")
                return question
        raise ChatValidationError("The conversation history contains no user question.")

    def _rewrite_query(self, question: str) -> str:
        turns = [ChatTurn(role="system", content=QUERY_REWRITE_PROMPT), ChatTurn(role="user", content=question)]
        query = self._complete(turns, None, "search query")
        logger.debug("Rewrote question into search query: %s", query)
        return query

    def _build_answer_turns(
        self,
        history: Sequence[ChatMessage],
        document_context: str,
        images: Optional[Sequence[SupportingImageRecord]],
    ) -> list[ChatTurn]:
        turns = [ChatTurn(role="system", content=self._system_instruction)]
        turns.extend(ChatTurn(role=message.role, content=message.content) for message in history)

        if images is not None:
            token = self._acquire_image_token()
            parts: list[ContentPart] = [IMAGE_ANSWER_PROMPT.format(sources=document_context)]
            parts.extend(ImagePart(url=f"{image.url}?{token}") for image in images)
            turns.append(ChatTurn(role="user", content=parts))
        else:
            turns.append(ChatTurn(role="user", content=TEXT_ANSWER_PROMPT.format(sources=document_context)))

        return turns

    def _acquire_image_token(self) -> str:
        if self._token_issuer is None:
            raise TokenAcquisitionError("Failed to get token")

        token = self._token_issuer.get_token([self._settings.image_token_scope])
        if not token:
            raise TokenAcquisitionError("Failed to get token")
        return token

    def _generate_followup_questions(self, answer: str, settings: ExecutionSettings) -> list[str]:
        turns = [
            ChatTurn(role="system", content=FOLLOWUP_SYSTEM_PROMPT),
            ChatTurn(role="user", content=FOLLOWUP_PROMPT.format(answer=answer)),
        ]
        return parse_followup_questions(self._complete(turns, settings, "follow-up questions"))

    def _complete(self, turns: list[ChatTurn], settings: Optional[ExecutionSettings], purpose: str) -> str:
        content = self._completer.complete(turns, settings)
        if not content or not content.strip():
            raise ChatGenerationError(f"Failed to get {purpose}")
        return content

    def _resolve_temperature(self, overrides: Optional[RequestOverrides]) -> float:
        if overrides is None or overrides.temperature is None:
            return self._settings.temperature
        return overrides.temperature

    def _load_system_prompt(self, path: Optional[Path]) -> Optional[str]:
        if not path:
            return None

        expanded = path.expanduser()
        if expanded.is_dir():
            logger.warning("System prompt path is a directory, ignoring: %s", expanded)
            return None
        try:
            content = expanded.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            logger.warning("System prompt file not found: %s", expanded)
            return None
        except OSError as exc:
            logger.warning("Unable to read system prompt file %s: %s", expanded, exc)
            return None

        return content or None



DEFAULT_SYSTEM_PROMPT = (
    "Eres un asistente de Recursos Humanos que ayuda a los empleados de la empresa con sus preguntas. "
    "Sé breve en tus respuestas"
)

QUERY_REWRITE_PROMPT = """Eres un asistente de IA útil, genera una consulta de búsqueda para una pregunta de seguimiento.
Haz tu respuesta simple y precisa. Devuelve solo la consulta, no devuelvas ningún otro texto.
por ejemplo:
Candidatos con más de 3 años de experiencia en .NET.
Candidatos con al menos 1 año de experiencia en Python."""

TEXT_ANSWER_PROMPT = """ ## Fuente ##
{sources}
## Fin ##

Tu respuesta tiene que ser un objeto json, No ponga su respuesta entre ```json y ```, devolver la cadena json directamente con el siguiente formato.
{{
    "answer": // la respuesta a la pregunta, agregar una referencia de origen al final de cada frase. por ejemplo, Apple es una fruta [referencia1.pdf][referencia2.pdf]. Si no hay ninguna fuente disponible, poner la respuesta como No lo sé.
    "thoughts": // pensamientos breves sobre cómo llegaste a la respuesta, por ejemplo, qué fuentes utilizaste, en qué pensaste, etc.
}}"""

IMAGE_ANSWER_PROMPT = """## Fuente ##
{sources}
## Fin ##
Responda la pregunta basada en la fuente disponible e imágenes.
Su respuesta debe ser un objeto json con los campos de answer y thoughts.
No ponga su respuesta entre ```json y ```, devuelva la cadena json directamente. Ejemplo: {{"answer": "No lo sé", "thoughts": "No lo sé"}}"""

FOLLOWUP_SYSTEM_PROMPT = "Eres un asistente de IA útil"

FOLLOWUP_PROMPT = """Genera tres preguntas de seguimiento basadas en la respuesta que acabas de generar.
# Respuesta
{answer}

# Formato de la respuesta
Retorna las preguntas de seguimiento como un Json con una lista de strings. No pongas la respuesta entre ```json y ```, returna el string del json directamente.
ejemplo.
[
    "¿Quién tiene experiencia en JavaScript?",
    "¿Quién tiene experiencia en Java?",
    "¿Quién tiene experiencia en Scrum?"
]"""
