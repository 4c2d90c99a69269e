# tests/test_history.py
"""
Tests for genchat.history.validate_chat_history.
"""

import pytest

from genchat.exceptions import ValidationError
from genchat.history import validate_chat_history
from genchat.models import Content


def _content(role, *parts):
    return Content.model_validate({"role": role, "parts": list(parts)})


class TestValidateChatHistory:
    """Tests for transcript well-formedness rules."""

    def test_empty_history_is_valid(self):
        validate_chat_history([])

    def test_alternating_transcript_is_valid(self):
        validate_chat_history([
            _content("user", {"text": "hi"}),
            _content("model", {"function_call": {"name": "lookup", "args": {"q": 1}}}),
            _content("function", {"function_response": {"name": "lookup", "response": {"r": 2}}}),
            _content("model", {"text": "done"}),
        ])

    def test_first_turn_must_be_user(self):
        with pytest.raises(ValidationError, match="First content should be with role 'user', got model"):
            validate_chat_history([_content("model", {"text": "hi"})])

    def test_unknown_role(self):
        with pytest.raises(ValidationError, match="Got assistant"):
            validate_chat_history([_content("user", {"text": "a"}), _content("assistant", {"text": "b"})])

    def test_missing_role(self):
        with pytest.raises(ValidationError):
            validate_chat_history([_content("user", {"text": "a"}), Content(parts=[{"text": "b"}])])

    def test_turn_without_parts(self):
        with pytest.raises(ValidationError, match="at least one part"):
            validate_chat_history([_content("user")])

    @pytest.mark.parametrize("role,part,field", [
        ("user", {"function_call": {"name": "f"}}, "function_call"),
        ("model", {"inline_data": {"mime_type": "image/png", "data": "aGk="}}, "inline_data"),
        ("function", {"text": "x"}, "text"),
        ("system", {"function_response": {"name": "f"}}, "function_response"),
    ])
    def test_part_not_allowed_for_role(self, role, part, field):
        history = [_content("user", {"text": "start"}), _content(role, part)]
        with pytest.raises(ValidationError, match=f"Content with role '{role}' can't contain '{field}' part"):
            validate_chat_history(history)
