"""Client settings (mistralkit.yaml) schema as Pydantic models.

Each provider section is an immutable client configuration object handed to
the adapters at construction time.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict

from contracts.chat import ChatModel
from contracts.embedding import EmbeddingModel
from contracts.transcription import (
    DEFAULT_TRANSCRIPTION_MODEL,
    TranscriptionOptions,
    TranscriptionResponseFormat,
)


class AppInfo(BaseModel):
    name: str = "mistralkit"
    version: str = "0.1.0"


# ── Provider connections ────────────────────────────────────────────


class ClientConfig(BaseModel):
    """Base URL, credentials and timeout shared by every call of a client."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    api_key: str | None = None
    api_key_env: str | None = None  # consulted when api_key is unset
    timeout: float = 60.0

    def resolve_api_key(self) -> str:
        """Return the API key, falling back to the configured env variable."""
        key = self.api_key
        if not key and self.api_key_env:
            key = os.environ.get(self.api_key_env)
        if not key:
            source = f" or ${self.api_key_env}" if self.api_key_env else ""
            raise ValueError(f"No API key configured for {self.base_url} (api_key{source})")
        return key


class ChatDefaults(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str = ChatModel.SMALL.value
    temperature: float | None = 0.7
    top_p: float | None = 1.0
    max_tokens: int | None = None
    safe_prompt: bool | None = False
    random_seed: int | None = None


class EmbeddingDefaults(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str = EmbeddingModel.EMBED.value
    encoding_format: str = "float"


class MistralConfig(ClientConfig):
    base_url: str = "https://api.mistral.ai"
    api_key_env: str | None = "MISTRAL_API_KEY"
    chat: ChatDefaults = ChatDefaults()
    embedding: EmbeddingDefaults = EmbeddingDefaults()


class OpenAiConfig(ClientConfig):
    base_url: str = "https://api.openai.com"
    api_key_env: str | None = "OPENAI_API_KEY"
    transcription: TranscriptionOptions = TranscriptionOptions(
        model=DEFAULT_TRANSCRIPTION_MODEL,
        temperature=0.7,
        response_format=TranscriptionResponseFormat.JSON,
    )


# ── Audit + logging ─────────────────────────────────────────────────


class AuditConfig(BaseModel):
    path: str | None = None  # audit log disabled when unset


class LoggingConfig(BaseModel):
    level: str = "WARNING"


# ── Root settings ───────────────────────────────────────────────────


class Settings(BaseModel):
    app: AppInfo = AppInfo()
    mistral: MistralConfig = MistralConfig()
    openai: OpenAiConfig = OpenAiConfig()
    audit: AuditConfig = AuditConfig()
    logging: LoggingConfig = LoggingConfig()
