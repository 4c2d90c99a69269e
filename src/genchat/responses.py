# src/genchat/responses.py
"""
Response helpers.

Predicates and formatters used after a remote call returns: deciding
whether a response can be admitted into history, explaining why a
response was blocked, extracting text and function calls, and merging
streamed chunks into one response.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ResponseBlockedError
from .models import Candidate, Content, FunctionCall, GenerateContentResponse, Part

logger = logging.getLogger(__name__)

BAD_FINISH_REASONS = frozenset({
    "SAFETY",
    "RECITATION",
    "LANGUAGE",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
})


def is_valid_response(response: GenerateContentResponse) -> bool:
    """
    True if the first candidate carries usable content: at least one part,
    no empty part and no empty text.
    """
    if not response.candidates:
        return False
    content = response.candidates[0].content
    if content is None or not content.parts:
        return False
    for part in content.parts:
        if part is None or not part.set_fields():
            return False
        if part.text is not None and part.text == "":
            return False
    return True


def had_bad_finish_reason(candidate: Candidate) -> bool:
    return bool(candidate.finish_reason) and candidate.finish_reason in BAD_FINISH_REASONS


def format_block_error_message(response: GenerateContentResponse) -> str:
    """
    Builds a human readable explanation of why a response was blocked.

    Returns:
        The explanation, or an empty string if the response was not blocked.
    """
    message = ""
    if not response.candidates and response.prompt_feedback is not None:
        message += "Response was blocked"
        if response.prompt_feedback.block_reason:
            message += f" due to {response.prompt_feedback.block_reason}"
        if response.prompt_feedback.block_reason_message:
            message += f": {response.prompt_feedback.block_reason_message}"
    elif response.candidates:
        first_candidate = response.candidates[0]
        if had_bad_finish_reason(first_candidate):
            message += f"Candidate was blocked due to {first_candidate.finish_reason}"
            if first_candidate.finish_message:
                message += f": {first_candidate.finish_message}"
    return message


def _first_candidate_parts(response: GenerateContentResponse) -> List[Part]:
    if not response.candidates or response.candidates[0].content is None:
        return []
    return list(response.candidates[0].content.parts)


def _get_text(response: GenerateContentResponse) -> str:
    """Concatenates text, executable code and code execution output of the first candidate."""
    chunks: List[str] = []
    for part in _first_candidate_parts(response):
        if part.text:
            chunks.append(part.text)
        if part.executable_code is not None:
            chunks.append(f"\n```{part.executable_code.language or ''}\n{part.executable_code.code}\n```\n")
        if part.code_execution_result is not None:
            chunks.append(f"\n```\n{part.code_execution_result.output or ''}\n```\n")
    return "".join(chunks)


def get_response_text(response: GenerateContentResponse) -> str:
    """
    Returns the text of the first candidate.

    Raises:
        ResponseBlockedError: If the candidate finished for a blocking reason,
                              or the prompt itself was blocked.
    """
    if response.candidates:
        if len(response.candidates) > 1:
            logger.warning(f"This response had {len(response.candidates)} candidates. Returning text "
                           "from the first candidate only. Access response.candidates directly to use "
                           "the other candidates.")
        if had_bad_finish_reason(response.candidates[0]):
            raise ResponseBlockedError(format_block_error_message(response), response=response)
        return _get_text(response)
    if response.prompt_feedback is not None:
        raise ResponseBlockedError(f"Text not available. {format_block_error_message(response)}",
                                   response=response)
    return ""


def get_function_calls(response: GenerateContentResponse) -> Optional[List[FunctionCall]]:
    """Returns the function calls of the first candidate, or None if it made none."""
    calls = [p.function_call for p in _first_candidate_parts(response) if p.function_call is not None]
    return calls or None


def aggregate_responses(chunks: Iterable[GenerateContentResponse]) -> GenerateContentResponse:
    """
    Merges streamed chunks into a single response.

    Candidates are matched by index. Their parts are appended in arrival
    order; the latest finish reason, finish message, safety ratings and
    citation metadata win. Prompt feedback and usage metadata are taken from
    the latest chunk that carries them.
    """
    merged: Dict[int, Dict[str, Any]] = {}
    prompt_feedback = None
    usage_metadata = None

    for chunk in chunks:
        if chunk.prompt_feedback is not None:
            prompt_feedback = chunk.prompt_feedback
        if chunk.usage_metadata is not None:
            usage_metadata = chunk.usage_metadata
        for position, candidate in enumerate(chunk.candidates or []):
            index = candidate.index if candidate.index is not None else position
            entry = merged.setdefault(index, {"index": index, "role": None, "parts": None})
            for attr in ("finish_reason", "finish_message", "safety_ratings", "citation_metadata"):
                value = getattr(candidate, attr)
                if value is not None:
                    entry[attr] = value
            if candidate.content is not None:
                if entry["parts"] is None:
                    entry["parts"] = []
                entry["role"] = candidate.content.role or entry["role"]
                entry["parts"].extend(candidate.content.parts)

    candidates = []
    for index in sorted(merged):
        entry = merged[index]
        role = entry.pop("role")
        parts = entry.pop("parts")
        content = Content(role=role, parts=parts) if parts is not None else None
        candidates.append(Candidate(content=content, **entry))

    return GenerateContentResponse(
        candidates=candidates or None,
        prompt_feedback=prompt_feedback,
        usage_metadata=usage_metadata,
    )
