# src/genchat/chat_session.py
"""
Chat sessions for genchat.

A ChatSession keeps the turn-by-turn history of a conversation with one
model and sends messages to the generation service strictly in the order
they were submitted, even when callers start a send without awaiting the
previous one.

Ordering is enforced by a chain of asyncio tasks of which only the tail is
kept. Each send reads the current tail and replaces it with its own task in
one step with no `await` in between; the new task first waits for the old
tail to settle, then builds its request from the history as it stands at
that point, performs the remote call and runs the admission step. History
is mutated only inside admission steps, so the chain totally orders every
change to it.
"""

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .exceptions import FormatError, ValidationError
from .history import validate_chat_history
from .models import (Content, GenerateContentResponse, GenerateContentResult,
                     GenerateContentStreamResult, RequestOptions, Role,
                     StartChatParams)
from .observer import (LoggingObserver, SessionEvent, SessionEventType,
                       SessionObserver, Severity)
from .requests import (MessageInput, build_generate_content_request,
                       format_new_content)
from .responses import format_block_error_message, is_valid_response
from .transport import BaseTransport, GenAITransport

logger = logging.getLogger(__name__)


class _ReportedToCaller(Exception):
    """
    Marks a streaming failure that the caller already observes through the
    stream result it was handed, so the background link must not report it.
    """
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))


async def _settled(link: Optional["asyncio.Future[Any]"]) -> None:
    """Waits for a chain link to finish without propagating its outcome."""
    if link is None or link.done():
        return
    await asyncio.wait([link])


def _consume_outcome(future: "asyncio.Future[Any]") -> None:
    if not future.cancelled():
        future.exception()


async def _final_response(stream_result: GenerateContentStreamResult) -> GenerateContentResponse:
    try:
        return await stream_result.response
    except Exception as e:
        raise _ReportedToCaller(e) from e


class ChatSession:
    """
    A conversation with one model that remembers its history.

    Blocked prompts are not added to history. Blocked candidates are not
    added to history, nor are the prompts that generated them.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        params: Optional[Union[StartChatParams, Mapping[str, Any]]] = None,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
        *,
        transport: Optional[BaseTransport] = None,
        observer: Optional[SessionObserver] = None,
    ):
        """
        Initializes the ChatSession.

        Args:
            api_key: Credential passed to the transport on every call.
            model: Model identifier.
            params: Options fixed for the session, including an optional
                    initial history.
            request_options: Default transport options for every call.
            transport: Performs the remote calls. Defaults to GenAITransport.
            observer: Receives diagnostics. Defaults to LoggingObserver.

        Raises:
            ValidationError: If `params` is malformed or its history is not a
                             well-formed transcript.
        """
        self._api_key = api_key
        self.model = model
        try:
            self.params = params if isinstance(params, StartChatParams) else StartChatParams.model_validate(params or {})
            self._request_options = (request_options if isinstance(request_options, RequestOptions)
                                     else RequestOptions.model_validate(request_options or {}))
        except (PydanticValidationError, FormatError) as e:
            raise ValidationError(f"Invalid chat parameters: {e}")

        validate_chat_history(self.params.history)
        self._history: List[Content] = list(self.params.history)
        self._transport = transport or GenAITransport()
        self._observer = observer or LoggingObserver()
        # Tail of the pending chain; None is an already-resolved no-op.
        self._send_task: Optional["asyncio.Future[Any]"] = None
        logger.debug("ChatSession created for model '%s' with %d history turns.", model, len(self._history))

    async def get_history(self) -> List[Content]:
        """
        Gets the chat history so far, once every send issued before this call
        has been settled. The returned list is the session's own; do not
        mutate it.
        """
        await _settled(self._send_task)
        return self._history

    def _merge_options(self, request_options: Optional[Union[RequestOptions, Mapping[str, Any]]]) -> RequestOptions:
        if request_options is None:
            return self._request_options.model_copy()
        if not isinstance(request_options, RequestOptions):
            try:
                request_options = RequestOptions.model_validate(request_options)
            except PydanticValidationError as e:
                raise FormatError(f"Invalid request options: {e}")
        return self._request_options.merged(request_options)

    def _notify(self, event: SessionEvent) -> None:
        """Hands an event to the observer; an observer failure is logged, never raised."""
        try:
            self._observer.notify(event)
        except Exception as e:
            logger.error(f"Session observer failed on {event.event_type.value} event: {e}", exc_info=True)

    def _admit(self, new_content: Content, response: GenerateContentResponse, method: str) -> None:
        """Records the exchange if the response is usable; otherwise reports why it was not."""
        if is_valid_response(response):
            response_content = response.candidates[0].content
            # Response seems to come back without a role set.
            if not response_content.role:
                response_content = response_content.model_copy(update={"role": Role.MODEL.value})
            self._history.extend((new_content, response_content))
            return

        block_error_message = format_block_error_message(response)
        if block_error_message:
            self._notify(SessionEvent(
                event_type=SessionEventType.RESPONSE_BLOCKED,
                severity=Severity.WARNING,
                method=method,
                model=self.model,
                message=f"{method}() was unsuccessful. {block_error_message}. "
                        "Inspect response object for details.",
                data={"block_reason": block_error_message},
            ))

    def _release(self, link: "asyncio.Future[Any]") -> None:
        """Done callback of unary links: a failed tail is replaced by a resolved no-op."""
        if link.cancelled():
            failed = True
        else:
            failed = link.exception() is not None
        if failed and self._send_task is link:
            self._send_task = None

    async def send_message(
        self,
        request: MessageInput,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    ) -> GenerateContentResult:
        """
        Sends a chat message and receives a non-streaming result.

        Fields set in `request_options` take precedence over the request
        options the session was created with.

        Raises:
            FormatError: If the message cannot be turned into content.
            TransportError: If the remote call fails.
        """
        new_content = format_new_content(request)
        options = self._merge_options(request_options)
        previous = self._send_task

        async def _send() -> GenerateContentResult:
            await _settled(previous)
            generate_request = build_generate_content_request(self.params, self._history, new_content)
            result = await self._transport.generate_content(self._api_key, self.model, generate_request, options)
            self._admit(new_content, result.response, "send_message")
            return result

        link = asyncio.ensure_future(_send())
        link.add_done_callback(self._release)
        self._send_task = link
        return await asyncio.shield(link)

    async def send_message_stream(
        self,
        request: MessageInput,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    ) -> GenerateContentStreamResult:
        """
        Sends a chat message and receives the response as a stream result
        holding a live chunk stream and an aggregated response awaitable.

        Returns as soon as the stream is live; the history is updated in the
        background once the stream completes.

        Raises:
            FormatError: If the message cannot be turned into content.
            TransportError: If the streaming call cannot be dispatched.
        """
        new_content = format_new_content(request)
        options = self._merge_options(request_options)
        previous = self._send_task
        dispatched: "asyncio.Future[GenerateContentStreamResult]" = asyncio.get_running_loop().create_future()
        # A caller cancelled before dispatch never retrieves the outcome.
        dispatched.add_done_callback(_consume_outcome)

        async def _send() -> None:
            await _settled(previous)
            try:
                generate_request = build_generate_content_request(self.params, self._history, new_content)
                stream_result = await self._transport.generate_content_stream(
                    self._api_key, self.model, generate_request, options)
            except Exception as e:
                dispatched.set_exception(e)
                return
            dispatched.set_result(stream_result)

            try:
                response = await _final_response(stream_result)
                self._admit(new_content, response, "send_message_stream")
            except _ReportedToCaller as e:
                logger.debug(f"send_message_stream() response failed, left to the caller: {e.cause}")
            except Exception as e:
                # No caller awaits this link.
                self._notify(SessionEvent(
                    event_type=SessionEventType.HISTORY_UPDATE_FAILED,
                    severity=Severity.ERROR,
                    method="send_message_stream",
                    model=self.model,
                    message=f"send_message_stream() could not update the chat history: {e}",
                    error=e,
                ))

        self._send_task = asyncio.ensure_future(_send())
        return await asyncio.shield(dispatched)
