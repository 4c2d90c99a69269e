# src/genchat/client.py
"""
Entry points for genchat.

`GenerativeAI` holds the credential, transport and observer shared by the
models and chat sessions it creates. `GenerativeModel` binds a model name
to default generation options and either performs one-shot calls or starts
chat sessions that inherit those options.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .chat_session import ChatSession
from .config import GenChatConfig
from .exceptions import ConfigError, FormatError
from .models import (Content, GenerateContentRequest, GenerateContentResult,
                     GenerateContentStreamResult, GenerationConfig,
                     RequestOptions, SafetySetting, StartChatParams, Tool,
                     ToolConfig)
from .observer import LoggingObserver, SessionObserver
from .requests import MessageInput, format_new_content
from .transport import BaseTransport, GenAITransport

logger = logging.getLogger(__name__)

# Options a model hands down to every chat it starts.
_MODEL_PARAM_FIELDS = (
    "safety_settings",
    "generation_config",
    "tools",
    "tool_config",
    "system_instruction",
    "cached_content",
)


class GenerativeModel:
    """
    A model name plus default generation options.

    Options passed to `start_chat()` take precedence over the model's.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        safety_settings: Optional[List[Union[SafetySetting, Mapping[str, Any]]]] = None,
        generation_config: Optional[Union[GenerationConfig, Mapping[str, Any]]] = None,
        tools: Optional[List[Union[Tool, Mapping[str, Any]]]] = None,
        tool_config: Optional[Union[ToolConfig, Mapping[str, Any]]] = None,
        system_instruction: Any = None,
        cached_content: Optional[str] = None,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
        transport: Optional[BaseTransport] = None,
        observer: Optional[SessionObserver] = None,
    ):
        if not model:
            raise ConfigError("A model name is required.")
        self._api_key = api_key
        self.model = model
        try:
            self._params = StartChatParams(
                safety_settings=safety_settings,
                generation_config=generation_config,
                tools=tools,
                tool_config=tool_config,
                system_instruction=system_instruction,
                cached_content=cached_content,
            )
            self._request_options = (request_options if isinstance(request_options, RequestOptions)
                                     else RequestOptions.model_validate(request_options or {}))
        except (PydanticValidationError, FormatError) as e:
            raise ConfigError(f"Invalid options for model '{model}': {e}")
        self._transport = transport or GenAITransport()
        self._observer = observer or LoggingObserver()

    @property
    def params(self) -> StartChatParams:
        return self._params

    @property
    def request_options(self) -> RequestOptions:
        return self._request_options

    def _build_request(self, request: Union[MessageInput, GenerateContentRequest]) -> GenerateContentRequest:
        if isinstance(request, GenerateContentRequest):
            return request
        values = {name: getattr(self._params, name) for name in _MODEL_PARAM_FIELDS}
        return GenerateContentRequest(contents=[format_new_content(request)], **values)

    def _options(self, request_options: Optional[Union[RequestOptions, Mapping[str, Any]]]) -> RequestOptions:
        if request_options is not None and not isinstance(request_options, RequestOptions):
            try:
                request_options = RequestOptions.model_validate(request_options)
            except PydanticValidationError as e:
                raise FormatError(f"Invalid request options: {e}")
        return self._request_options.merged(request_options)

    async def generate_content(
        self,
        request: Union[MessageInput, GenerateContentRequest],
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    ) -> GenerateContentResult:
        """Makes a single non-streaming call, without any history."""
        return await self._transport.generate_content(
            self._api_key, self.model, self._build_request(request), self._options(request_options))

    async def generate_content_stream(
        self,
        request: Union[MessageInput, GenerateContentRequest],
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    ) -> GenerateContentStreamResult:
        """Makes a single streaming call, without any history."""
        return await self._transport.generate_content_stream(
            self._api_key, self.model, self._build_request(request), self._options(request_options))

    def start_chat(self, params: Optional[Union[StartChatParams, Mapping[str, Any]]] = None) -> ChatSession:
        """
        Starts a chat session with this model.

        Args:
            params: Session options; fields set here override the model's.

        Raises:
            ValidationError: If `params` or its history is malformed.
        """
        merged: Dict[str, Any] = {name: getattr(self._params, name) for name in _MODEL_PARAM_FIELDS}
        if isinstance(params, StartChatParams):
            merged.update({name: getattr(params, name) for name in params.model_fields_set})
        elif params:
            merged.update(params)
        return ChatSession(
            self._api_key,
            self.model,
            merged,
            self._request_options,
            transport=self._transport,
            observer=self._observer,
        )


class GenerativeAI:
    """
    Top-level client. Creates models that share one credential, transport
    and observer.
    """

    def __init__(
        self,
        api_key: str,
        *,
        default_model: Optional[str] = None,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
        transport: Optional[BaseTransport] = None,
        observer: Optional[SessionObserver] = None,
    ):
        if not api_key:
            raise ConfigError("An API key is required.")
        self._api_key = api_key
        self.default_model = default_model
        self._request_options = request_options
        self._transport = transport or GenAITransport()
        self._observer = observer or LoggingObserver()

    @classmethod
    def from_config(
        cls,
        config: GenChatConfig,
        *,
        transport: Optional[BaseTransport] = None,
        observer: Optional[SessionObserver] = None,
    ) -> "GenerativeAI":
        """
        Creates a client from a loaded configuration.

        Raises:
            ConfigError: If no API key can be resolved.
        """
        api_key = config.resolve_api_key()
        if not api_key:
            raise ConfigError(f"API key not found. Set 'api_key' in the configuration "
                              f"or the '{config.api_key_env_var}' environment variable.")
        return cls(
            api_key,
            default_model=config.default_model,
            request_options=config.request_options,
            transport=transport or GenAITransport(log_raw_payloads=config.log_raw_payloads),
            observer=observer,
        )

    def get_generative_model(
        self,
        model: Optional[str] = None,
        *,
        safety_settings: Optional[List[Union[SafetySetting, Mapping[str, Any]]]] = None,
        generation_config: Optional[Union[GenerationConfig, Mapping[str, Any]]] = None,
        tools: Optional[List[Union[Tool, Mapping[str, Any]]]] = None,
        tool_config: Optional[Union[ToolConfig, Mapping[str, Any]]] = None,
        system_instruction: Optional[Union[str, Content, Mapping[str, Any]]] = None,
        cached_content: Optional[str] = None,
        request_options: Optional[Union[RequestOptions, Mapping[str, Any]]] = None,
    ) -> GenerativeModel:
        """
        Returns a GenerativeModel. `request_options` override the client's
        field by field; a missing `model` falls back to the default model.
        """
        model_name = model or self.default_model
        if not model_name:
            raise ConfigError("No model given and no default model configured.")

        options = self._request_options
        if request_options is not None:
            base = (options if isinstance(options, RequestOptions)
                    else RequestOptions.model_validate(options or {}))
            extra = (request_options if isinstance(request_options, RequestOptions)
                     else RequestOptions.model_validate(request_options))
            options = base.merged(extra)

        logger.debug("Creating GenerativeModel for '%s'.", model_name)
        return GenerativeModel(
            self._api_key,
            model_name,
            safety_settings=safety_settings,
            generation_config=generation_config,
            tools=tools,
            tool_config=tool_config,
            system_instruction=system_instruction,
            cached_content=cached_content,
            request_options=options,
            transport=self._transport,
            observer=self._observer,
        )
