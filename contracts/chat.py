"""Mistral AI chat completion contracts.

Request, response and streamed-chunk shapes for ``POST /v1/chat/completions``.
Field names are the wire names; ``None`` fields are left out of the JSON body.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, field_validator


class _WireEnum(str, Enum):
    """String enum that maps values it does not know to ``UNKNOWN``."""

    @classmethod
    def _missing_(cls, value: object) -> Any:
        return cls.__members__.get("UNKNOWN")


def _lenient(enum_cls: type[_WireEnum]) -> BeforeValidator:
    def coerce(value: Any) -> Any:
        if isinstance(value, str) and value not in enum_cls._value2member_map_:
            return enum_cls("unknown")
        return value

    return BeforeValidator(coerce)


class Role(_WireEnum):
    # Mistral rejects conversations where a system message follows a user message.
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    UNKNOWN = "unknown"


class ToolChoice(_WireEnum):
    AUTO = "auto"
    ANY = "any"
    NONE = "none"
    UNKNOWN = "unknown"


class FinishReason(_WireEnum):
    """Why the model stopped generating tokens for a choice."""

    STOP = "stop"
    LENGTH = "length"
    MODEL_LENGTH = "model_length"
    TOOL_CALL = "tool_call"
    TOOL_CALLS = "tool_calls"
    ERROR = "error"
    UNKNOWN = "unknown"


class ChatModel(str, Enum):
    TINY = "open-mistral-7b"
    MIXTRAL = "open-mixtral-8x7b"
    SMALL = "mistral-small-latest"
    MEDIUM = "mistral-medium-latest"
    LARGE = "mistral-large-latest"


RoleField = Annotated[Role, _lenient(Role)]
ToolChoiceField = Annotated[ToolChoice, _lenient(ToolChoice)]
FinishReasonField = Annotated[FinishReason, _lenient(FinishReason)]


# ── Messages ────────────────────────────────────────────────────────


class ChatCompletionFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str  # JSON-encoded string


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    type: str | None = "function"
    function: ChatCompletionFunction


class ChatCompletionMessage(BaseModel):
    """One message of the conversation."""

    model_config = ConfigDict(frozen=True)

    content: str | None = None
    role: RoleField
    name: str | None = None
    tool_calls: list[ToolCall] | None = None  # assistant messages only


class DeltaMessage(ChatCompletionMessage):
    """Partial message carried by a streamed chunk.

    Only the first delta of a choice names the role.
    """

    role: RoleField | None = None


# ── Tools ───────────────────────────────────────────────────────────


class Function(BaseModel):
    """Function definition offered to the model.

    ``name`` must be made of ``a-z``, ``A-Z``, ``0-9``, ``_`` or ``-`` with a
    maximum length of 64; the provider enforces it. ``parameters`` is a JSON
    Schema object and may be given as a JSON string.
    """

    model_config = ConfigDict(frozen=True)

    description: str | None = None
    name: str
    parameters: dict[str, Any]

    @field_validator("parameters", mode="before")
    @classmethod
    def _parse_schema(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value


class FunctionTool(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function"] = "function"
    function: Function


class ResponseFormat(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str  # "text" | "json_object"


# ── Request ─────────────────────────────────────────────────────────


class ChatCompletionRequest(BaseModel):
    """Chat completion request.

    ``stream`` decides which adapter operation accepts the request: the
    synchronous call requires ``False`` and the streaming call ``True``.
    """

    model_config = ConfigDict(frozen=True)

    model: str | None = None
    messages: list[ChatCompletionMessage]
    tools: list[FunctionTool] | None = None
    tool_choice: ToolChoiceField | None = None
    temperature: float | None = 0.7
    top_p: float | None = 1.0
    max_tokens: int | None = None
    stream: bool = False
    safe_prompt: bool | None = False
    random_seed: int | None = None
    response_format: ResponseFormat | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON body sent to the provider.

        Unset fields are left out, except that a field with a non-null
        default which was cleared to ``None`` is sent as ``null``.
        """
        wire = self.model_dump(mode="json", exclude_none=True)
        for name, field in type(self).model_fields.items():
            if field.default is not None and getattr(self, name) is None:
                wire[name] = None
        return wire


# ── Responses ───────────────────────────────────────────────────────


class Usage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int | None = None
    total_tokens: int | None = None
    completion_tokens: int | None = None


class Choice(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = 0
    message: ChatCompletionMessage
    finish_reason: FinishReasonField | None = None


class ChatCompletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "chat.completion"
    created: int | None = None
    model: str | None = None
    choices: list[Choice]
    usage: Usage | None = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = 0
    delta: DeltaMessage
    finish_reason: FinishReasonField | None = None  # set on the last chunk only


class ChatCompletionChunk(BaseModel):
    """One streamed unit of a completion.

    ``id`` and ``created`` are the same on every chunk of a stream.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "chat.completion.chunk"
    created: int | None = None
    model: str | None = None
    choices: list[ChunkChoice] = []
    usage: Usage | None = None
