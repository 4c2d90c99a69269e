# src/genchat/exceptions.py
"""
Custom exceptions for the genchat library.

This module defines the exception hierarchy used by chat sessions and their
collaborators, so that applications can tell a malformed input apart from a
failed remote call and react to each in a targeted way.

A send call whose response was blocked still succeeds; the block is
reported through the session observer. `ResponseBlockedError` is only
raised when text is read from such a response.
"""

from typing import Any, Optional


class GenChatError(Exception):
    """Base class for all genchat specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in genchat."):
        super().__init__(message)

class ConfigError(GenChatError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ValidationError(GenChatError):
    """
    Raised when a chat history or the parameters used to start a chat are malformed.
    A session whose construction raised this error is never created.
    """
    def __init__(self, message: str = "Invalid chat history."):
        super().__init__(message)

class FormatError(GenChatError):
    """Raised when a message passed to a send call cannot be turned into content."""
    def __init__(self, message: str = "Invalid message content."):
        super().__init__(message)

class TransportError(GenChatError):
    """Raised when the remote generation call fails (network, auth, server side, stream errors)."""
    def __init__(self, message: str = "Transport error.", status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"[{status_code}] {message}"
        super().__init__(message)

class ResponseBlockedError(GenChatError):
    """
    Raised by the response text helpers when text is requested from a response
    that the service blocked. The offending response is kept for inspection.
    """
    def __init__(self, message: str = "Response was blocked.", response: Any = None):
        self.response = response
        super().__init__(message)
