# src/genchat/config/__init__.py
"""
Configuration for genchat: the validated `GenChatConfig` model and the
layered `load_config` loader.
"""

from .loader import DEFAULT_ENV_PREFIX, GenChatConfig, load_config

__all__ = [
    "DEFAULT_ENV_PREFIX",
    "GenChatConfig",
    "load_config",
]
