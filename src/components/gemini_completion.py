"""Gemini chat completion client."""

from __future__ import annotations

import logging
import mimetypes
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlsplit

import google.generativeai as genai

from src.components.interfaces import ChatTurn, ExecutionSettings, ImagePart
from src.config.settings import ChatSettings, get_chat_settings, get_gemini_settings
from src.utils.exceptions import ChatGenerationError

logger = logging.getLogger(__name__)

GenerationModelFactory = Callable[[str, Optional[str]], Any]

_ROLE_MAP = {"user": "user", "assistant": "model"}
_DEFAULT_IMAGE_MIME = "image/png"


class GeminiChatCompletion:
    """Send a chat history to a Gemini model and return the completion text."""

    def __init__(
        self,
        *,
        settings: ChatSettings | None = None,
        model_factory: GenerationModelFactory | None = None,
    ) -> None:
        self._settings = settings or get_chat_settings()
        self._model_factory = model_factory or self._default_model_factory

        if model_factory is None:
            self._ensure_gemini_configured()

    def complete(self, turns: Sequence[ChatTurn], settings: Optional[ExecutionSettings] = None) -> str:
        """Return the text of a single completion for ``turns``."""

        system_instruction, contents = self._build_contents(turns)
        if not contents:
            raise ChatGenerationError("At least one user or assistant turn is required.")

        model = self._model_factory(self._settings.model, system_instruction)
        generation_config = self._build_generation_config(settings)

        try:
            response = model.generate_content(contents, generation_config=generation_config)
        except Exception as exc:
            raise ChatGenerationError("Gemini text generation failed.") from exc

        text = self._extract_text(response)
        logger.debug("Gemini returned %s characters for %s turns", len(text), len(contents))
        return text

    def _ensure_gemini_configured(self) -> None:
        gemini = get_gemini_settings()
        if not gemini.api_key:
            logger.debug("Gemini API key not provided; chat completion may fail at runtime.")
            return
        genai.configure(api_key=gemini.api_key)

    @staticmethod
    def _default_model_factory(model_name: str, system_instruction: Optional[str]):
        kwargs: dict[str, Any] = {}
        if system_instruction:
            kwargs["system_instruction"] = system_instruction
        return genai.GenerativeModel(model_name, **kwargs)

    @staticmethod
    def _build_contents(turns: Sequence[ChatTurn]) -> tuple[Optional[str], list[dict[str, Any]]]:
        system_parts: list[str] = []
        contents: list[dict[str, Any]] = []

        for turn in turns:
            if turn.role == "system":
                if contents:
                    raise ChatGenerationError("System turns must precede the conversation.")
                system_parts.append(str(turn.content))
                continue

            role = _ROLE_MAP.get(turn.role)
            if role is None:
                raise ChatGenerationError(f"Unsupported chat role: {turn.role}")
            contents.append({"role": role, "parts": GeminiChatCompletion._build_parts(turn.content)})

        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    @staticmethod
    def _build_parts(content) -> list[Any]:
        if isinstance(content, str):
            return [content]

        parts: list[Any] = []
        for item in content:
            if isinstance(item, ImagePart):
                parts.append({"file_data": {"mime_type": _guess_mime_type(item.url), "file_uri": item.url}})
            else:
                parts.append(str(item))
        return parts

    @staticmethod
    def _build_generation_config(settings: Optional[ExecutionSettings]) -> dict[str, Any]:
        if settings is None:
            return {}

        config: dict[str, Any] = {"stop_sequences": list(settings.stop_sequences)}
        if settings.max_tokens is not None:
            config["max_output_tokens"] = settings.max_tokens
        if settings.temperature is not None:
            config["temperature"] = settings.temperature
        return config

    @staticmethod
    def _extract_text(response: Any) -> str:
        if response is None:
            raise ChatGenerationError("Gemini returned an empty response.")

        try:
            text = getattr(response, "text", None)
        except ValueError:
            # The SDK raises when the candidate was blocked or has no parts.
            text = None
        if isinstance(text, str) and text.strip():
            return text.strip()

        if isinstance(response, dict):
            text = response.get("text")
            if isinstance(text, str) and text.strip():
                return text.strip()

            candidates = response.get("candidates")
            if isinstance(candidates, list) and candidates:
                first = candidates[0]
                if isinstance(first, dict):
                    content = first.get("content")
                    if isinstance(content, dict):
                        parts = content.get("parts")
                        if isinstance(parts, list) and parts:
                            part_text = parts[0]
                            if isinstance(part_text, str) and part_text.strip():
                                return part_text.strip()

        raise ChatGenerationError("Gemini returned no completion content.")


def _guess_mime_type(url: str) -> str:
    mime_type, _ = mimetypes.guess_type(urlsplit(url).path)
    return mime_type or _DEFAULT_IMAGE_MIME
