"""Embedding contracts.

Request/response shapes for ``POST /v1/embeddings`` and the abstract
interface for embedding backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, field_validator

from contracts.chat import Usage

MAX_INPUT_ITEMS = 1024

_BAD_INPUT = "The input must be either a String, or a List of Strings or List of List of integers."


class EmbeddingModel(str, Enum):
    EMBED = "mistral-embed"


class InputKind(str, Enum):
    TEXT = "text"
    TEXTS = "texts"
    TOKENS = "tokens"


class EmbeddingRequest(BaseModel):
    """Text (or token arrays) to embed.

    ``input`` is one of: a single string, a list of strings, or a list of
    token arrays. Lists must hold between 1 and 1024 items.
    """

    model_config = ConfigDict(frozen=True)

    input: Union[str, list[Any]]
    model: str = EmbeddingModel.EMBED.value
    encoding_format: str = "float"

    @field_validator("input", mode="before")
    @classmethod
    def _check_input(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("The input can not be null.")
        if isinstance(value, str):
            return value
        if not isinstance(value, (list, tuple)):
            raise ValueError(_BAD_INPUT)
        if not value:
            raise ValueError("The input list can not be empty.")
        if len(value) > MAX_INPUT_ITEMS:
            raise ValueError(f"The list must be {MAX_INPUT_ITEMS} dimensions or less")
        first = value[0]
        if isinstance(first, bool) or not isinstance(first, (str, int, list, tuple)):
            raise ValueError(_BAD_INPUT)
        return list(value)

    @property
    def input_kind(self) -> InputKind:
        if isinstance(self.input, str):
            return InputKind.TEXT
        if isinstance(self.input[0], str):
            return InputKind.TEXTS
        return InputKind.TOKENS

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Embedding(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    embedding: list[float]
    object: str = "embedding"


class EmbeddingList(BaseModel):
    """Embeddings returned for one request, ordered by ``index``."""

    model_config = ConfigDict(frozen=True)

    object: str = "list"
    data: list[Embedding]
    model: str | None = None
    usage: Usage | None = None


class EmbeddingAdapter(ABC):
    """Abstract base class for embedding generation backends."""

    @abstractmethod
    async def embeddings(self, request: EmbeddingRequest) -> EmbeddingList:
        """Send one embeddings request and return the full response."""
        ...

    @abstractmethod
    def model_name(self) -> str:
        """Return the name of the default embedding model."""
        ...

    def create_request(self, input: Any) -> EmbeddingRequest:
        """Build a request for *input* with the default model."""
        return EmbeddingRequest(input=input, model=self.model_name())

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a list of texts with the configured defaults."""
        result = await self.embeddings(self.create_request(texts))
        return [e.embedding for e in sorted(result.data, key=lambda e: e.index)]
