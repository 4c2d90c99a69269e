"""
Shared pytest fixtures for genchat tests.

Provides a scripted in-memory transport, response builders and a
capturing session observer, so that chat sessions can be exercised
without any network access.
"""

import asyncio
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import pytest

from genchat.chat_session import ChatSession
from genchat.models import (Content, GenerateContentRequest,
                            GenerateContentResponse, GenerateContentResult,
                            GenerateContentStreamResult, RequestOptions)
from genchat.observer import CallbackObserver, SessionEvent
from genchat.transport import BaseTransport, process_stream

# ============================================================================
# RESPONSE BUILDERS
# ============================================================================


def text_response(*texts: str, role: Optional[str] = None, finish_reason: str = "STOP") -> GenerateContentResponse:
    """A single-candidate response with one text part per argument."""
    content: Dict[str, Any] = {"parts": [{"text": t} for t in texts]}
    if role is not None:
        content["role"] = role
    return GenerateContentResponse.model_validate({
        "candidates": [{"content": content, "finish_reason": finish_reason, "index": 0}],
    })


def blocked_prompt_response(reason: str = "SAFETY", message: Optional[str] = None) -> GenerateContentResponse:
    """A response whose prompt was blocked: no candidates, prompt feedback set."""
    feedback: Dict[str, Any] = {"block_reason": reason}
    if message:
        feedback["block_reason_message"] = message
    return GenerateContentResponse.model_validate({"prompt_feedback": feedback})


def blocked_candidate_response(reason: str = "SAFETY") -> GenerateContentResponse:
    """A response whose only candidate stopped for a blocking reason without content."""
    return GenerateContentResponse.model_validate({
        "candidates": [{"finish_reason": reason, "index": 0}],
    })


def user(text: str) -> Content:
    return Content(role="user", parts=[{"text": text}])


def model(text: str) -> Content:
    return Content(role="model", parts=[{"text": text}])


# ============================================================================
# FAKE TRANSPORT
# ============================================================================


class FakeTransport(BaseTransport):
    """
    Transport that replays a script of outcomes and records every request.

    Each call consumes the next scripted step, in call order.
    """

    def __init__(self):
        self.requests: List[GenerateContentRequest] = []
        self.options: List[Optional[RequestOptions]] = []
        self.api_keys: List[str] = []
        self.models: List[str] = []
        self._script: Deque[Dict[str, Any]] = deque()

    def add_response(self, response: GenerateContentResponse, *, delay: float = 0.0) -> None:
        self._script.append({"response": response, "delay": delay})

    def add_error(self, error: Exception, *, delay: float = 0.0) -> None:
        """Scripts a failing call; for streaming calls the failure happens at dispatch."""
        self._script.append({"error": error, "delay": delay})

    def add_stream(
        self,
        chunks: List[GenerateContentResponse],
        *,
        error: Optional[Exception] = None,
        chunk_delay: float = 0.0,
    ) -> None:
        """Scripts a stream yielding `chunks`, then raising `error` if given."""
        self._script.append({"chunks": chunks, "stream_error": error, "chunk_delay": chunk_delay, "delay": 0.0})

    def _record(self, api_key: str, model_name: str, request: GenerateContentRequest,
                request_options: Optional[RequestOptions]) -> Dict[str, Any]:
        self.api_keys.append(api_key)
        self.models.append(model_name)
        self.requests.append(request)
        self.options.append(request_options)
        if not self._script:
            raise AssertionError("FakeTransport called more times than scripted")
        return self._script.popleft()

    async def generate_content(self, api_key, model, request, request_options=None) -> GenerateContentResult:
        step = self._record(api_key, model, request, request_options)
        if step["delay"]:
            await asyncio.sleep(step["delay"])
        if "error" in step:
            raise step["error"]
        return GenerateContentResult(response=step["response"])

    async def generate_content_stream(self, api_key, model, request, request_options=None) -> GenerateContentStreamResult:
        step = self._record(api_key, model, request, request_options)
        if step["delay"]:
            await asyncio.sleep(step["delay"])
        if "error" in step:
            raise step["error"]
        if "response" in step:
            step = {"chunks": [step["response"]], "stream_error": None, "chunk_delay": 0.0}

        async def chunks():
            for chunk in step["chunks"]:
                if step["chunk_delay"]:
                    await asyncio.sleep(step["chunk_delay"])
                yield chunk
            if step["stream_error"] is not None:
                raise step["stream_error"]

        return process_stream(chunks())


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def events() -> List[SessionEvent]:
    """Events captured by the `observer` fixture."""
    return []


@pytest.fixture
def observer(events: List[SessionEvent]) -> CallbackObserver:
    return CallbackObserver(events.append)


@pytest.fixture
def session(transport: FakeTransport, observer: CallbackObserver) -> ChatSession:
    """A session with empty history on model "m"."""
    return ChatSession("test-key", "m", transport=transport, observer=observer)
