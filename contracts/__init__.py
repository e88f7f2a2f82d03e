"""Shared contracts: typed request/response models for every provider binding."""

from contracts.chat import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ChatModel,
    Choice,
    ChunkChoice,
    DeltaMessage,
    FinishReason,
    Function,
    FunctionTool,
    ResponseFormat,
    Role,
    ToolCall,
    ToolChoice,
    Usage,
)
from contracts.embedding import Embedding, EmbeddingAdapter, EmbeddingList, EmbeddingModel, EmbeddingRequest
from contracts.transcription import (
    Transcript,
    TranscriptionAdapter,
    TranscriptionOptions,
    TranscriptionRequest,
    TranscriptionResponse,
)
from contracts.settings import ClientConfig, MistralConfig, OpenAiConfig, Settings
from contracts.audit import AuditEntry, AuditEvent, AuditLogger, StreamTermination

__all__ = [
    # chat
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatCompletionMessage",
    "ChatCompletionRequest",
    "ChatModel",
    "Choice",
    "ChunkChoice",
    "DeltaMessage",
    "FinishReason",
    "Function",
    "FunctionTool",
    "ResponseFormat",
    "Role",
    "ToolCall",
    "ToolChoice",
    "Usage",
    # embedding
    "Embedding",
    "EmbeddingAdapter",
    "EmbeddingList",
    "EmbeddingModel",
    "EmbeddingRequest",
    # transcription
    "Transcript",
    "TranscriptionAdapter",
    "TranscriptionOptions",
    "TranscriptionRequest",
    "TranscriptionResponse",
    # settings
    "ClientConfig",
    "MistralConfig",
    "OpenAiConfig",
    "Settings",
    # audit
    "AuditEntry",
    "AuditEvent",
    "AuditLogger",
    "StreamTermination",
]
