# tests/test_models.py
"""
Tests for the genchat data models.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from genchat.models import (Content, GenerateContentResponse, GenerationConfig,
                            Part, RequestOptions, Role, StartChatParams)


class TestRole:
    """Tests for the Role enum."""

    def test_case_insensitive(self):
        assert Role("USER") is Role.USER
        assert Role("Model") is Role.MODEL

    def test_assistant_alias(self):
        assert Role("assistant") is Role.MODEL

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            Role("narrator")


class TestContentModels:
    """Tests for Part and Content."""

    def test_camel_case_aliases(self):
        part = Part.model_validate({"inlineData": {"mimeType": "image/png", "data": "AAAA"}})
        assert part.inline_data.mime_type == "image/png"
        assert part.set_fields() == ["inline_data"]

    def test_unknown_part_fields_are_kept(self):
        part = Part.model_validate({"thought": True})
        assert part.set_fields() == ["thought"]

    def test_content_is_frozen(self):
        content = Content(role="user", parts=[{"text": "hi"}])
        with pytest.raises(PydanticValidationError):
            content.role = "model"

    def test_response_aliases(self):
        response = GenerateContentResponse.model_validate({
            "candidates": [{"finishReason": "STOP", "content": {"role": "model", "parts": [{"text": "x"}]}}],
            "usageMetadata": {"totalTokenCount": 7},
        })
        assert response.candidates[0].finish_reason == "STOP"
        assert response.usage_metadata.total_token_count == 7


class TestOptionModels:
    """Tests for option models."""

    def test_generation_config_rejects_unknown_fields(self):
        with pytest.raises(PydanticValidationError):
            GenerationConfig(temprature=0.5)

    def test_request_options_timeout_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            RequestOptions(timeout=0)

    def test_merged_prefers_explicit_overrides(self):
        base = RequestOptions(timeout=1000, api_version="v1")
        merged = base.merged(RequestOptions(timeout=2000))
        assert merged.timeout == 2000
        assert merged.api_version == "v1"
        assert base.timeout == 1000

    def test_merged_with_none_copies(self):
        base = RequestOptions(base_url="https://example.test")
        merged = base.merged(None)
        assert merged == base
        assert merged is not base


class TestStartChatParams:
    """Tests for system instruction normalization on StartChatParams."""

    def test_text_instruction(self):
        params = StartChatParams(system_instruction="Be brief.")
        assert params.system_instruction.role == "system"
        assert params.system_instruction.parts[0].text == "Be brief."

    def test_list_instruction(self):
        params = StartChatParams(system_instruction=["One.", {"text": "Two."}])
        assert [p.text for p in params.system_instruction.parts] == ["One.", "Two."]

    def test_content_instruction_keeps_role(self):
        params = StartChatParams(system_instruction={"role": "user", "parts": [{"text": "x"}]})
        assert params.system_instruction.role == "user"

    def test_content_without_role_gets_system(self):
        params = StartChatParams(system_instruction=Content(parts=[{"text": "x"}]))
        assert params.system_instruction.role == "system"

    def test_history_from_mappings(self):
        params = StartChatParams.model_validate({
            "history": [{"role": "user", "parts": [{"text": "hi"}]}],
            "generationConfig": {"maxOutputTokens": 10},
        })
        assert params.history[0].parts[0].text == "hi"
        assert params.generation_config.max_output_tokens == 10
