# src/genchat/transport.py
"""
Transport layer: performing the remote generation call.

`BaseTransport` is the interface chat sessions depend on. `GenAITransport`
implements it on top of the `google-genai` SDK, converting between the
genchat models and the SDK's types and wrapping SDK failures in
`TransportError`. `process_stream` turns an async iterator of chunks into a
`GenerateContentStreamResult` whose live stream and aggregated response are
fed by a single background task.
"""

import abc
import asyncio
import json
import logging
from collections import OrderedDict
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .exceptions import ConfigError, TransportError
from .models import (GenerateContentRequest, GenerateContentResponse,
                     GenerateContentResult, GenerateContentStreamResult,
                     RequestOptions)
from .responses import aggregate_responses

logger = logging.getLogger(__name__)

_STREAM_END = object()


class _StreamFailure:
    """Queue item carrying the error that ended a stream."""
    def __init__(self, error: BaseException):
        self.error = error


def _consume_outcome(future: "asyncio.Future[Any]") -> None:
    # The same failure is raised from the live stream; mark it retrieved.
    if not future.cancelled():
        future.exception()


def process_stream(chunks: AsyncIterator[GenerateContentResponse]) -> GenerateContentStreamResult:
    """
    Wraps an async iterator of chunk responses into a stream result.

    One background task reads `chunks` to the end. Every chunk is forwarded
    to the returned `stream`; once the source is exhausted the `response`
    future resolves with all chunks aggregated. A failure while reading is
    raised from `stream` after the chunks that preceded it, and fails
    `response` with the same `TransportError`. Must be called from a running
    event loop.
    """
    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[Any]" = asyncio.Queue()
    response: "asyncio.Future[GenerateContentResponse]" = loop.create_future()
    response.add_done_callback(_consume_outcome)

    async def pump() -> None:
        received: List[GenerateContentResponse] = []
        try:
            async for chunk in chunks:
                received.append(chunk)
                queue.put_nowait(chunk)
        except Exception as e:
            error = e if isinstance(e, TransportError) else TransportError(f"Error reading the response stream: {e}")
            queue.put_nowait(_StreamFailure(error))
            response.set_exception(error)
            return
        queue.put_nowait(_STREAM_END)
        if received:
            response.set_result(aggregate_responses(received))
        else:
            response.set_exception(TransportError("Error processing stream because the response is empty."))

    async def stream() -> AsyncIterator[GenerateContentResponse]:
        while True:
            item = await queue.get()
            if item is _STREAM_END:
                return
            if isinstance(item, _StreamFailure):
                raise item.error
            yield item

    pump_task = loop.create_task(pump())
    return GenerateContentStreamResult(stream=stream(), response=response, _pump=pump_task)


class BaseTransport(abc.ABC):
    """
    Abstract interface for performing generation calls.

    Implementations own everything below the request model: the network,
    authentication headers, timeouts and response decoding.
    """

    @abc.abstractmethod
    async def generate_content(
        self,
        api_key: str,
        model: str,
        request: GenerateContentRequest,
        request_options: Optional[RequestOptions] = None,
    ) -> GenerateContentResult:
        """
        Perform one unary round trip.

        Raises:
            TransportError: If the call fails.
        """

    @abc.abstractmethod
    async def generate_content_stream(
        self,
        api_key: str,
        model: str,
        request: GenerateContentRequest,
        request_options: Optional[RequestOptions] = None,
    ) -> GenerateContentStreamResult:
        """
        Dispatch a streaming call and return as soon as the stream is live.

        Failures that happen after dispatch are delivered through the
        returned result's `stream` and `response`.

        Raises:
            TransportError: If the call cannot be dispatched.
        """

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""


class GenAITransport(BaseTransport):
    """
    Transport backed by the `google-genai` SDK.

    One SDK client is created per distinct (API key, request options) pair
    and reused for later calls. At most `max_cached_clients` are kept; the
    least recently used one is dropped first.
    """

    def __init__(self, log_raw_payloads: bool = False, max_cached_clients: int = 8):
        """
        Args:
            log_raw_payloads: Whether to log raw request/response payloads at DEBUG level.
            max_cached_clients: Upper bound on the number of cached SDK clients.
        """
        if max_cached_clients < 1:
            raise ConfigError("max_cached_clients must be at least 1.")
        self.log_raw_payloads_enabled = log_raw_payloads
        self._max_cached_clients = max_cached_clients
        self._clients: "OrderedDict[Tuple[str, str], genai.Client]" = OrderedDict()

    def _get_client(self, api_key: str, request_options: Optional[RequestOptions]) -> genai.Client:
        options = request_options or RequestOptions()
        cache_key = (api_key, options.model_dump_json(exclude_none=True))
        client = self._clients.get(cache_key)
        if client is not None:
            self._clients.move_to_end(cache_key)
            return client

        http_options = types.HttpOptions(
            api_version=options.api_version,
            base_url=options.base_url,
            headers=options.custom_headers,
            timeout=options.timeout,
        )
        try:
            client = genai.Client(api_key=api_key, http_options=http_options)
        except Exception as e:
            logger.error(f"Failed to initialize Google Gen AI client: {e}", exc_info=True)
            raise ConfigError(f"Google Gen AI configuration failed: {e}")
        self._clients[cache_key] = client
        if len(self._clients) > self._max_cached_clients:
            self._clients.popitem(last=False)
        logger.debug("Google Gen AI client created (api_version=%s, base_url=%s).",
                     options.api_version, options.base_url)
        return client

    def _build_call_args(
        self, request: GenerateContentRequest
    ) -> Tuple[List[Dict[str, Any]], Optional[types.GenerateContentConfig]]:
        """Converts a request into the SDK's `contents` and `config` arguments."""
        contents = [content.model_dump(exclude_none=True) for content in request.contents]

        config: Dict[str, Any] = {}
        if request.generation_config is not None:
            config.update(request.generation_config.model_dump(exclude_none=True))
        if request.safety_settings:
            config["safety_settings"] = [s.model_dump(exclude_none=True) for s in request.safety_settings]
        if request.tools:
            config["tools"] = [t.model_dump(exclude_none=True) for t in request.tools]
        if request.tool_config is not None:
            config["tool_config"] = request.tool_config.model_dump(exclude_none=True)
        if request.system_instruction is not None:
            config["system_instruction"] = request.system_instruction.model_dump(exclude_none=True)
        if request.cached_content:
            config["cached_content"] = request.cached_content

        try:
            return contents, (types.GenerateContentConfig(**config) if config else None)
        except Exception as e:
            raise TransportError(f"Invalid generation request: {e}")

    def _convert_response(self, sdk_response: Any) -> GenerateContentResponse:
        payload = sdk_response.model_dump(mode="json", exclude_none=True)
        if self.log_raw_payloads_enabled:
            logger.debug(f"RAW LLM RESPONSE: {json.dumps(payload, indent=2, default=str)}")
        return GenerateContentResponse.model_validate(payload)

    def _wrap_error(self, error: Exception) -> TransportError:
        if isinstance(error, TransportError):
            return error
        if isinstance(error, genai_errors.APIError):
            logger.debug(f"Google AI API error: {error}")
            return TransportError(f"Google AI API Error: {error.message or error}", status_code=error.code)
        logger.debug(f"Unexpected error during generation call: {error}")
        return TransportError(f"An unexpected error occurred: {error}")

    def _log_request(self, model: str, contents: List[Dict[str, Any]], stream: bool) -> None:
        if self.log_raw_payloads_enabled and logger.isEnabledFor(logging.DEBUG):
            log_data = {"model": model, "contents": contents, "stream": stream}
            logger.debug(f"RAW LLM REQUEST: {json.dumps(log_data, indent=2, default=str)}")

    async def generate_content(
        self,
        api_key: str,
        model: str,
        request: GenerateContentRequest,
        request_options: Optional[RequestOptions] = None,
    ) -> GenerateContentResult:
        client = self._get_client(api_key, request_options)
        contents, config = self._build_call_args(request)
        self._log_request(model, contents, stream=False)
        try:
            sdk_response = await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise self._wrap_error(e) from e
        return GenerateContentResult(response=self._convert_response(sdk_response))

    async def generate_content_stream(
        self,
        api_key: str,
        model: str,
        request: GenerateContentRequest,
        request_options: Optional[RequestOptions] = None,
    ) -> GenerateContentStreamResult:
        client = self._get_client(api_key, request_options)
        contents, config = self._build_call_args(request)
        self._log_request(model, contents, stream=True)
        try:
            sdk_stream = await client.aio.models.generate_content_stream(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise self._wrap_error(e) from e

        async def chunks() -> AsyncIterator[GenerateContentResponse]:
            try:
                async for sdk_chunk in sdk_stream:
                    yield self._convert_response(sdk_chunk)
            except Exception as e:
                raise self._wrap_error(e) from e

        return process_stream(chunks())

    async def close(self) -> None:
        """The google-genai clients hold no state that needs explicit closing here."""
        logger.debug("GenAITransport closed (%d cached clients dropped).", len(self._clients))
        self._clients.clear()
