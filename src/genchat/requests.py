# src/genchat/requests.py
"""
Request helpers: turning caller input into content and assembling the
request for one remote generation call.
"""

from collections.abc import Mapping, Sequence
from typing import Any, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .exceptions import FormatError
from .models import Content, GenerateContentRequest, Part, Role, StartChatParams

# What a caller may pass to a send call.
MessageInput = Union[str, Part, Mapping, Sequence[Union[str, Part, Mapping]]]


def _to_part(item: Any) -> Part:
    """Converts one fragment of caller input into a Part."""
    if isinstance(item, str):
        return Part(text=item)
    if isinstance(item, Part):
        return item
    if isinstance(item, Mapping):
        try:
            return Part.model_validate(item)
        except PydanticValidationError as e:
            raise FormatError(f"Invalid part {item!r}: {e}")
    raise FormatError(f"Unsupported message part of type '{type(item).__name__}'. "
                      "Expected a string, a Part or a mapping.")


def _to_parts(request: Any) -> List[Part]:
    if isinstance(request, (str, Part, Mapping)):
        return [_to_part(request)]
    if isinstance(request, Sequence):
        return [_to_part(item) for item in request]
    raise FormatError(f"Unsupported message of type '{type(request).__name__}'.")


def format_new_content(request: MessageInput) -> Content:
    """
    Normalizes a message into the turn that will be sent.

    Strings become text parts. A message made only of function responses
    becomes a "function" turn; anything else becomes a "user" turn.

    Raises:
        FormatError: If the message is empty, holds an unsupported item, or
                     mixes function responses with other parts.
    """
    parts = _to_parts(request)
    function_parts = [p for p in parts if p.function_response is not None]
    user_parts = [p for p in parts if p.function_response is None]

    if function_parts and user_parts:
        raise FormatError("Within a single message, FunctionResponse cannot be mixed "
                          "with other type of part in the request for sending chat message.")
    if function_parts:
        return Content(role=Role.FUNCTION.value, parts=function_parts)
    if not user_parts:
        raise FormatError("No content is provided for sending chat message.")
    return Content(role=Role.USER.value, parts=user_parts)


def format_system_instruction(value: Any) -> Optional[Content]:
    """
    Normalizes a system instruction given as text, a part, a list of parts,
    a Content or a content mapping into a Content with role "system".
    """
    if value is None:
        return None
    if isinstance(value, Content):
        return value if value.role else value.model_copy(update={"role": Role.SYSTEM.value})
    if isinstance(value, Mapping) and "parts" in value:
        content = Content.model_validate(value)
        return content if content.role else content.model_copy(update={"role": Role.SYSTEM.value})
    return Content(role=Role.SYSTEM.value, parts=_to_parts(value))


def build_generate_content_request(
    params: StartChatParams,
    history: Sequence[Content],
    new_content: Content,
) -> GenerateContentRequest:
    """Assembles the request from the session options, the history so far and the new turn."""
    return GenerateContentRequest(
        contents=[*history, new_content],
        safety_settings=params.safety_settings,
        generation_config=params.generation_config,
        tools=params.tools,
        tool_config=params.tool_config,
        system_instruction=params.system_instruction,
        cached_content=params.cached_content,
    )
