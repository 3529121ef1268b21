"""Tests for error handler."""

import logging

from polyjson.error_handler import ErrorHandler
from polyjson.types import (
    ConstructionError,
    ConversionError,
    ErrorType,
    MemberLookupError,
    ParseError,
)
from polyjson.utils.validation import MAX_SAFE_DEPTH


class TestErrorHandler:
    """Tests for ErrorHandler class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.error_handler = ErrorHandler()

    def test_validate_input_valid(self):
        """Test validation of well-formed input."""
        result = self.error_handler.validate_input('{"users":{"user1":{"name":"Alice"}}}')

        assert result.is_valid
        assert len(result.errors) == 0
        assert result.warnings == []

    def test_validate_input_unbalanced(self):
        """Test validation of input with a missing closing brace."""
        result = self.error_handler.validate_input('{"users":{"user1":{"name":"Alice"}}')

        assert not result.is_valid
        assert len(result.errors) > 0
        assert result.errors[0].type == ErrorType.PARSE

    def test_validate_input_empty(self):
        """Test validation of empty input."""
        result = self.error_handler.validate_input("   ")

        assert not result.is_valid
        assert "empty" in result.errors[0].message.lower()

    def test_validate_input_not_text(self):
        """Test validation of input that is not text."""
        result = self.error_handler.validate_input(b'{"a":1}')

        assert not result.is_valid
        assert "bytes" in result.errors[0].message

    def test_validate_input_bad_escape(self):
        """Test validation reports unsupported escapes inside strings."""
        result = self.error_handler.validate_input('{"a":["ok","\\u0041"]}')

        assert not result.is_valid
        assert result.errors[0].location == '"\\u0041"'

    def test_validate_input_deep_nesting(self):
        """Test validation warns about deep nesting."""
        depth = MAX_SAFE_DEPTH + 10
        text = "[" * depth + "1" + "]" * depth
        result = self.error_handler.validate_input(text)

        assert result.is_valid
        assert any("Deep nesting" in warning for warning in result.warnings)

    def test_validate_input_empty_array(self):
        """Test validation warns that [] decodes to null."""
        result = self.error_handler.validate_input("[]")

        assert result.is_valid
        assert any("null" in warning for warning in result.warnings)

    def test_handle_parse_error(self):
        """Test handling of malformed text."""
        error = ParseError("Unterminated string literal", '"abc')

        response = self.error_handler.handle_codec_error(error)

        assert not response.can_recover
        assert "unterminated" in response.suggested_action.lower()
        assert response.details == '"abc'

    def test_handle_conversion_error(self):
        """Test handling of a value that does not fit its target."""
        error = ConversionError("String >> int", '"5"', int)

        response = self.error_handler.handle_codec_error(error)

        assert not response.can_recover
        assert "int" in response.suggested_action
        assert response.details == {"value": '"5"', "target_type": int}

    def test_handle_construction_error(self):
        """Test handling of a composite that could not be built."""
        error = ConstructionError("No constructor", dict, ["name", "age"])

        response = self.error_handler.handle_codec_error(error)

        assert not response.can_recover
        assert "name, age" in response.suggested_action

    def test_handle_lookup_error(self):
        """Test handling of a missing member."""
        response = self.error_handler.handle_codec_error(MemberLookupError("name"))

        assert not response.can_recover
        assert response.details == {"name": "name"}

    def test_errors_are_logged(self, caplog):
        """Test handled errors are logged at error level."""
        with caplog.at_level(logging.ERROR):
            self.error_handler.handle_codec_error(ParseError("Bad input", "x"))

        assert "parse" in caplog.text
        assert "Bad input" in caplog.text
