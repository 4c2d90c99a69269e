# src/genchat/models.py
"""
Core data models for the genchat library.

This module defines the Pydantic models used to represent conversation
content (parts and turns), the options a chat session is started with,
the ephemeral request sent to the generation service and the responses
it returns. Field names are snake_case; camelCase aliases such as
``inlineData`` or ``finishReason`` are accepted on input so that payloads
copied from the REST documentation validate as-is.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """
    Enumeration of the roles a turn can carry.
    """
    USER = "user"
    MODEL = "model"
    FUNCTION = "function"
    SYSTEM = "system"

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        """
        Handles case-insensitive matching and the common "assistant" alias,
        which maps to Role.MODEL.
        """
        if isinstance(value, str):
            lower_value = value.lower()
            if lower_value == "assistant":
                return cls.MODEL
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


class _ContentModel(BaseModel):
    """Base for content and response models: immutable, alias tolerant, keeps unknown fields."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


class _OptionsModel(BaseModel):
    """Base for option models: alias tolerant, rejects unknown fields."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# --- Content ---

class Blob(_ContentModel):
    """Inline binary data, base64 encoded."""
    mime_type: str
    data: str


class FileData(_ContentModel):
    """Reference to a previously uploaded file."""
    mime_type: Optional[str] = None
    file_uri: str


class FunctionCall(_ContentModel):
    """A function call predicted by the model."""
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None


class FunctionResponse(_ContentModel):
    """The result of a function call, sent back to the model."""
    name: str
    response: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None


class ExecutableCode(_ContentModel):
    """Code generated by the model for execution."""
    language: Optional[str] = None
    code: str


class CodeExecutionResult(_ContentModel):
    """Outcome of executing an ExecutableCode part."""
    outcome: Optional[str] = None
    output: Optional[str] = None


class Part(_ContentModel):
    """
    One fragment of a turn. Normally exactly one of the fields is set.

    Attributes:
        text: Plain text.
        inline_data: Inline media bytes.
        file_data: Reference to uploaded media.
        function_call: A function call predicted by the model.
        function_response: The caller's answer to a function call.
        executable_code: Code produced by the model.
        code_execution_result: Result of running that code.
    """
    text: Optional[str] = None
    inline_data: Optional[Blob] = None
    file_data: Optional[FileData] = None
    function_call: Optional[FunctionCall] = None
    function_response: Optional[FunctionResponse] = None
    executable_code: Optional[ExecutableCode] = None
    code_execution_result: Optional[CodeExecutionResult] = None

    def set_fields(self) -> List[str]:
        """Returns the names of the populated fields, extras included."""
        return list(self.model_dump(exclude_none=True).keys())


class Content(_ContentModel):
    """
    A single turn of a conversation.

    Attributes:
        role: The producer of the turn ("user", "model", "function" or "system").
              Responses from the service sometimes omit it.
        parts: The ordered fragments making up the turn.
    """
    role: Optional[str] = None
    parts: List[Part] = Field(default_factory=list)


# --- Options ---

class SafetySetting(_OptionsModel):
    """A harm category and the threshold at which content is blocked."""
    category: str
    threshold: str


class GenerationConfig(_OptionsModel):
    """Sampling and output options for generation."""
    candidate_count: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None
    response_logprobs: Optional[bool] = None
    logprobs: Optional[int] = None
    seed: Optional[int] = None


class FunctionDeclaration(_OptionsModel):
    """Declaration of a function the model may call."""
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class Tool(_OptionsModel):
    """A tool the model may use: function declarations or a built-in tool."""
    model_config = ConfigDict(extra="allow")

    function_declarations: Optional[List[FunctionDeclaration]] = None
    code_execution: Optional[Dict[str, Any]] = None
    google_search: Optional[Dict[str, Any]] = None


class FunctionCallingConfig(_OptionsModel):
    """Controls whether and which functions the model may call."""
    mode: Optional[str] = None
    allowed_function_names: Optional[List[str]] = None


class ToolConfig(_OptionsModel):
    """Tool configuration shared by all tools in a request."""
    function_calling_config: Optional[FunctionCallingConfig] = None


class RequestOptions(_OptionsModel):
    """
    Options applied by the transport to a single remote call.

    Attributes:
        timeout: Request timeout in milliseconds.
        api_version: API version, e.g. "v1beta".
        base_url: Alternative endpoint base URL.
        custom_headers: Extra HTTP headers sent with the request.
    """
    timeout: Optional[int] = Field(default=None, gt=0, description="Request timeout in milliseconds.")
    api_version: Optional[str] = None
    base_url: Optional[str] = None
    custom_headers: Optional[Dict[str, str]] = None

    def merged(self, overrides: Optional["RequestOptions"]) -> "RequestOptions":
        """Returns a copy with every field explicitly set on `overrides` taking precedence."""
        if overrides is None:
            return self.model_copy()
        return self.model_copy(update=overrides.model_dump(exclude_unset=True))


class StartChatParams(_OptionsModel):
    """
    Parameters fixed for the lifetime of a chat session.

    Attributes:
        history: Prior turns the conversation starts from.
        safety_settings: Safety thresholds applied to every request.
        generation_config: Sampling and output options.
        tools: Tools the model may use.
        tool_config: Tool calling configuration.
        system_instruction: System instruction, as text, part(s) or a Content.
        cached_content: Name of a cached content resource.
    """
    history: List[Content] = Field(default_factory=list)
    safety_settings: Optional[List[SafetySetting]] = None
    generation_config: Optional[GenerationConfig] = None
    tools: Optional[List[Tool]] = None
    tool_config: Optional[ToolConfig] = None
    system_instruction: Optional[Content] = None
    cached_content: Optional[str] = None

    @field_validator('system_instruction', mode='before')
    @classmethod
    def normalize_system_instruction(cls, v: Any) -> Any:
        """Accepts text, a part, a list of parts or a Content."""
        from .requests import format_system_instruction
        return format_system_instruction(v)


class GenerateContentRequest(_OptionsModel):
    """
    The request for one remote generation call. Built per call from the
    session options plus the history so far plus the new turn; never stored.
    """
    contents: List[Content]
    safety_settings: Optional[List[SafetySetting]] = None
    generation_config: Optional[GenerationConfig] = None
    tools: Optional[List[Tool]] = None
    tool_config: Optional[ToolConfig] = None
    system_instruction: Optional[Content] = None
    cached_content: Optional[str] = None


# --- Responses ---

class SafetyRating(_ContentModel):
    """Safety rating for a piece of content."""
    category: Optional[str] = None
    probability: Optional[str] = None
    blocked: Optional[bool] = None


class Candidate(_ContentModel):
    """A response candidate generated by the model."""
    content: Optional[Content] = None
    finish_reason: Optional[str] = None
    finish_message: Optional[str] = None
    safety_ratings: Optional[List[SafetyRating]] = None
    citation_metadata: Optional[Dict[str, Any]] = None
    index: Optional[int] = None


class PromptFeedback(_ContentModel):
    """Feedback about the prompt, including the reason it was blocked, if it was."""
    block_reason: Optional[str] = None
    block_reason_message: Optional[str] = None
    safety_ratings: Optional[List[SafetyRating]] = None


class UsageMetadata(_ContentModel):
    """Token counts reported by the service."""
    prompt_token_count: Optional[int] = None
    candidates_token_count: Optional[int] = None
    cached_content_token_count: Optional[int] = None
    total_token_count: Optional[int] = None


class GenerateContentResponse(_ContentModel):
    """
    A decoded response (or stream chunk) from the generation service.
    """
    candidates: Optional[List[Candidate]] = None
    prompt_feedback: Optional[PromptFeedback] = None
    usage_metadata: Optional[UsageMetadata] = None

    def text(self) -> str:
        """
        Returns the text of the first candidate.

        Raises:
            ResponseBlockedError: If the prompt or the candidate was blocked.
        """
        from .responses import get_response_text
        return get_response_text(self)

    def function_calls(self) -> Optional[List[FunctionCall]]:
        """Returns the function calls of the first candidate, or None if there are none."""
        from .responses import get_function_calls
        return get_function_calls(self)


class GenerateContentResult(BaseModel):
    """Result of a unary generation call."""
    response: GenerateContentResponse


@dataclass
class GenerateContentStreamResult:
    """
    Result of a streaming generation call.

    Attributes:
        stream: Async iterator over the chunk responses, usable immediately.
        response: Awaitable resolving to all chunks aggregated into one
                  response once the stream completes.
    """
    stream: AsyncIterator[GenerateContentResponse]
    response: "asyncio.Future[GenerateContentResponse]"
    _pump: Optional["asyncio.Task[None]"] = field(default=None, repr=False)
