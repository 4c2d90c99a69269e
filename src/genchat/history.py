# src/genchat/history.py
"""
Validation of a caller-supplied chat history.

A chat session only accepts an initial history that reads like a
well-formed transcript: it starts with a user turn, every turn has a
known role and at least one part, and each part kind is one the role is
allowed to produce.
"""

from typing import Dict, FrozenSet, Sequence

from .exceptions import ValidationError
from .models import Content, Role

PART_FIELDS = (
    "text",
    "inline_data",
    "file_data",
    "function_call",
    "function_response",
    "executable_code",
    "code_execution_result",
)

VALID_PARTS_PER_ROLE: Dict[str, FrozenSet[str]] = {
    Role.USER.value: frozenset({"text", "inline_data", "file_data"}),
    Role.FUNCTION.value: frozenset({"function_response"}),
    Role.MODEL.value: frozenset({"text", "function_call", "executable_code", "code_execution_result"}),
    Role.SYSTEM.value: frozenset({"text"}),
}


def validate_chat_history(history: Sequence[Content]) -> None:
    """
    Checks that `history` is a well-formed transcript.

    Raises:
        ValidationError: On the first turn that breaks a rule.
    """
    for position, content in enumerate(history):
        role = content.role
        if position == 0 and role != Role.USER.value:
            raise ValidationError(f"First content should be with role 'user', got {role}")
        if role not in VALID_PARTS_PER_ROLE:
            raise ValidationError(f"Each item should include role field. Got {role} but valid roles "
                                  f"are: {list(VALID_PARTS_PER_ROLE)}")
        if not content.parts:
            raise ValidationError("Each Content should have at least one part")

        allowed = VALID_PARTS_PER_ROLE[role]
        for part in content.parts:
            for field_name in PART_FIELDS:
                if getattr(part, field_name) is not None and field_name not in allowed:
                    raise ValidationError(f"Content with role '{role}' can't contain '{field_name}' part")
