"""Tests for request validation."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from genui.core import GenerationRequest, GenUIError, ValidationError, error_code, validate_tree_limits
from genui.core.errors import GenerationTimeout, InvalidGeneratedDocument


class TestGenerationRequest:
    """Test the generation request model."""

    def test_camel_case_body(self):
        request = GenerationRequest.model_validate(
            {
                "sessionId": "sess_1",
                "utterance": "  今天天气怎么样  ",
                "priorMessages": [{"role": "user", "content": "你好"}],
                "dataContext": {"city": "北京"},
            }
        )

        assert request.session_id == "sess_1"
        assert request.utterance == "今天天气怎么样"
        assert request.prior_messages[0].content == "你好"
        assert request.data_context == {"city": "北京"}

    def test_snake_case_body(self):
        request = GenerationRequest.model_validate({"utterance": "hi", "data_context": {"a": 1}})
        assert request.data_context == {"a": 1}
        assert request.session_id is None

    def test_message_list_body(self):
        request = GenerationRequest.model_validate(
            {
                "sessionId": "sess_2",
                "messages": [
                    {"role": "user", "content": "查一下天气"},
                    {"role": "assistant", "content": "好的"},
                    {"role": "user", "content": "把颜色改成绿色"},
                ],
                "state": {"dataContext": {"city": "上海"}},
            }
        )

        assert request.utterance == "把颜色改成绿色"
        assert [m.role for m in request.prior_messages] == ["user", "assistant"]
        assert request.data_context == {"city": "上海"}
        assert request.session_id == "sess_2"

    def test_blank_utterance_rejected(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest.model_validate({"utterance": "   "})

    def test_unknown_field_rejected(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest.model_validate({"utterance": "hi", "extra": 1})

    def test_bad_role_rejected(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest.model_validate(
                {"utterance": "hi", "priorMessages": [{"role": "robot", "content": "x"}]}
            )

    def test_frozen(self):
        request = GenerationRequest.model_validate({"utterance": "hi"})
        with pytest.raises(PydanticValidationError):
            request.utterance = "other"


class TestErrors:
    """Test error taxonomy."""

    def test_error_codes(self):
        assert error_code(GenerationTimeout("slow")) == "generation_timeout"
        assert error_code(ValidationError("bad")) == "validation_error"
        assert error_code(RuntimeError("boom")) == "internal_error"

    def test_invalid_document_keeps_raw(self):
        error = InvalidGeneratedDocument("not a tree", raw="hello")
        assert isinstance(error, GenUIError)
        assert error.raw == "hello"
        assert error.code == "invalid_generated_document"

    def test_tree_limits(self):
        validate_tree_limits({"component_type": "Text"}, '{"component_type": "Text"}')
        with pytest.raises(ValidationError):
            validate_tree_limits({}, "x" * (512 * 1024 + 1))
