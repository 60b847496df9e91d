"""Application configuration management."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Configuration values required for interacting with Google Gemini."""

    api_key: str = Field(default="", alias="GOOGLE_API_KEY")
    embedding_model: str = Field(default="text-embedding-004", alias="EMBEDDING_MODEL")
    vision_embedding_model: Optional[str] = Field(default=None, alias="VISION_EMBEDDING_MODEL")
    request_timeout: float = Field(default=60.0, alias="GEMINI_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("vision_embedding_model", mode="before")
    @classmethod
    def _blank_vision_model(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def resolved_timeout(self, override: Optional[float] = None) -> float:
        """Return the effective timeout, falling back to the configured default."""

        if override is not None and override > 0:
            return override
        return max(self.request_timeout, 0.0)

    @property
    def vision_enabled(self) -> bool:
        return bool(self.vision_embedding_model)


@lru_cache(maxsize=1)
def get_gemini_settings() -> GeminiSettings:
    """Cache and return the Gemini configuration settings."""

    return GeminiSettings()


class ChromaSettings(BaseSettings):
    """Configuration values required for interacting with Chroma DB."""

    host: str = Field(default="localhost", alias="CHROMA_HOST")
    port: int = Field(default=8000, alias="CHROMA_PORT")
    ssl: bool = Field(default=False, alias="CHROMA_SSL")
    collection_name: str = Field(default="documents", alias="CHROMA_COLLECTION_NAME")
    image_collection_name: str = Field(default="images", alias="CHROMA_IMAGE_COLLECTION_NAME")
    tenant: Optional[str] = Field(default=None, alias="CHROMA_TENANT")
    auth_token: Optional[str] = Field(default=None, alias="CHROMA_AUTH_TOKEN")
    metadata: dict[str, Any] = Field(default_factory=dict, alias="CHROMA_DEFAULT_METADATA")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, value: Any) -> dict[str, Any]:
        """Allow metadata to be provided as JSON strings or dictionaries."""

        if value in (None, "", {}):
            return {}

        if isinstance(value, dict):
            return value

        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("CHROMA_DEFAULT_METADATA must be valid JSON.") from exc

            if not isinstance(parsed, dict):
                raise ValueError("CHROMA_DEFAULT_METADATA JSON must describe an object.")
            return parsed

        raise ValueError("CHROMA_DEFAULT_METADATA must be a dict, JSON object, or empty.")

    def base_url(self) -> str:
        """Return the base URL used to communicate with the Chroma server."""

        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


@lru_cache(maxsize=1)
def get_chroma_settings() -> ChromaSettings:
    """Cache and return the Chroma configuration settings."""

    return ChromaSettings()


class ChatSettings(BaseSettings):
    """Generation defaults and citation/storage settings for the chat service."""

    model: str = Field(default="gemini-1.5-flash", alias="CHAT_MODEL")
    max_output_tokens: int = Field(default=1024, gt=0, alias="CHAT_MAX_OUTPUT_TOKENS")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, alias="CHAT_TEMPERATURE")
    system_prompt_path: Optional[Path] = Field(default=None, alias="CHAT_SYSTEM_PROMPT_PATH")
    storage_endpoint: str = Field(default="", alias="STORAGE_ACCOUNT_ENDPOINT")
    storage_container: str = Field(default="", alias="STORAGE_CONTAINER")
    image_token_scope: str = Field(
        default="https://www.googleapis.com/auth/devstorage.read_only",
        alias="IMAGE_TOKEN_SCOPE",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("system_prompt_path", mode="before")
    @classmethod
    def _blank_prompt_path(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def citation_base_url(self) -> str:
        """Return the storage container URL that citations are resolved against."""

        if not self.storage_endpoint:
            return ""

        parts = urlsplit(self.storage_endpoint)
        path = "/" + self.storage_container.strip("/") if self.storage_container else parts.path
        return urlunsplit((parts.scheme, parts.netloc, path or "/", "", ""))


@lru_cache(maxsize=1)
def get_chat_settings() -> ChatSettings:
    """Cache and return the chat configuration settings."""

    return ChatSettings()
