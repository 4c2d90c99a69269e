# src/genchat/__init__.py
"""
genchat - ordered chat sessions over the Gemini content generation API.

A ChatSession keeps the history of a conversation and sends messages in
the order they were submitted, even when callers do not await one send
before starting the next. GenerativeAI and GenerativeModel create sessions
and perform one-shot calls.
"""

from importlib.metadata import PackageNotFoundError, version

from .chat_session import ChatSession
from .client import GenerativeAI, GenerativeModel
from .config import GenChatConfig, load_config
from .exceptions import (
    ConfigError,
    FormatError,
    GenChatError,
    ResponseBlockedError,
    TransportError,
    ValidationError,
)
from .models import (
    Candidate,
    Content,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerateContentResult,
    GenerateContentStreamResult,
    GenerationConfig,
    Part,
    PromptFeedback,
    RequestOptions,
    Role,
    SafetySetting,
    StartChatParams,
    Tool,
    ToolConfig,
)
from .observer import (
    CallbackObserver,
    LoggingObserver,
    SessionEvent,
    SessionEventType,
    SessionObserver,
    Severity,
)
from .transport import BaseTransport, GenAITransport

try:
    __version__ = version("genchat")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "ChatSession",
    "GenerativeAI",
    "GenerativeModel",
    "GenChatConfig",
    "load_config",
    "ConfigError",
    "FormatError",
    "GenChatError",
    "ResponseBlockedError",
    "TransportError",
    "ValidationError",
    "Candidate",
    "Content",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "GenerateContentResult",
    "GenerateContentStreamResult",
    "GenerationConfig",
    "Part",
    "PromptFeedback",
    "RequestOptions",
    "Role",
    "SafetySetting",
    "StartChatParams",
    "Tool",
    "ToolConfig",
    "CallbackObserver",
    "LoggingObserver",
    "SessionEvent",
    "SessionEventType",
    "SessionObserver",
    "Severity",
    "BaseTransport",
    "GenAITransport",
]
