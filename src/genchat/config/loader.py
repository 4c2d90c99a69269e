# src/genchat/config/loader.py
"""
Layered configuration loading for genchat, built on pydantic-settings.

Sources, lowest precedence first:

1. The packaged ``default_config.toml``.
2. An optional user TOML file.
3. Environment variables starting with ``<PREFIX>_``; ``__`` separates
   nested keys (``GENCHAT_REQUEST_OPTIONS__TIMEOUT=30000`` sets
   ``request_options.timeout``).
4. An explicit overrides mapping.

Nested tables are merged across sources, so a user file that only sets
``[logging] console_enabled`` keeps every other logging default.
"""

import importlib.resources
import logging
import os
import pathlib
import tomllib
from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import (BaseSettings, PydanticBaseSettingsSource,
                               SettingsConfigDict, SettingsError,
                               TomlConfigSettingsSource)

from ..exceptions import ConfigError
from ..models import RequestOptions

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "GENCHAT"


def _default_config_path() -> pathlib.Path:
    return pathlib.Path(str(importlib.resources.files('genchat.config').joinpath('default_config.toml')))


class GenChatConfig(BaseSettings):
    """
    Validated genchat configuration.

    Instantiating it directly reads the packaged defaults and ``GENCHAT_*``
    environment variables; keyword arguments take precedence over both.
    `load_config()` additionally layers a user file.

    Attributes:
        api_key: API key, if stored in configuration.
        api_key_env_var: Environment variable consulted when `api_key` is empty.
        default_model: Model used when none is given explicitly.
        log_raw_payloads: Whether transports log raw payloads at DEBUG level.
        request_options: Default transport options.
        logging: Settings consumed by `genchat.logging_config.configure_logging`.
    """
    model_config = SettingsConfigDict(
        env_prefix=f"{DEFAULT_ENV_PREFIX}_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    api_key: Optional[str] = None
    api_key_env_var: str = "GOOGLE_API_KEY"
    default_model: str = "gemini-1.5-flash"
    log_raw_payloads: bool = False
    request_options: RequestOptions = Field(default_factory=RequestOptions)
    logging: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=_default_config_path()),
        )

    def resolve_api_key(self) -> Optional[str]:
        """Returns the configured key, else the value of `api_key_env_var`, else None."""
        if self.api_key:
            return self.api_key
        if self.api_key_env_var:
            return os.environ.get(self.api_key_env_var) or None
        return None


def _settings_class(user_file: Optional[pathlib.Path], read_env: bool) -> Type[GenChatConfig]:
    """A GenChatConfig whose sources include `user_file` and, optionally, the environment."""

    class _LoadedConfig(GenChatConfig):
        @classmethod
        def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                       dotenv_settings, file_secret_settings):
            sources = [init_settings]
            if read_env:
                sources.append(env_settings)
            if user_file is not None:
                sources.append(TomlConfigSettingsSource(settings_cls, toml_file=user_file))
            sources.append(TomlConfigSettingsSource(settings_cls, toml_file=_default_config_path()))
            return tuple(sources)

    return _LoadedConfig


def load_config(
    config_file_path: Optional[Union[str, pathlib.Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env_prefix: Optional[str] = DEFAULT_ENV_PREFIX,
) -> GenChatConfig:
    """
    Loads and validates the genchat configuration.

    Args:
        config_file_path: Optional user TOML file.
        overrides: Values that take precedence over every other source.
        env_prefix: Environment variable prefix; None disables environment loading.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If a source cannot be read or the result does not validate.
    """
    user_file = None
    if config_file_path:
        user_file = pathlib.Path(config_file_path).expanduser()
        if not user_file.is_file():
            raise ConfigError(f"Configuration file not found: {user_file}")

    init_kwargs: Dict[str, Any] = dict(overrides or {})
    if env_prefix:
        init_kwargs["_env_prefix"] = f"{env_prefix.upper()}_"

    try:
        config = _settings_class(user_file, read_env=bool(env_prefix))(**init_kwargs)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read configuration file '{user_file or _default_config_path()}': {e}")
    except (PydanticValidationError, SettingsError) as e:
        raise ConfigError(f"Invalid genchat configuration: {e}")

    if user_file is not None:
        logger.debug(f"Loaded configuration file: {user_file}")
    return config
