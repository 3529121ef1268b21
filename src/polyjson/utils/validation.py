"""Validation utilities for codec input text."""

from typing import List, Tuple

from ..types import ErrorType, ParseError, ValidationError, ValidationResult
from ..values import ArrayValue, ObjectValue, StringValue, Value


# Nesting beyond this depth risks exhausting the interpreter's recursion limit.
MAX_SAFE_DEPTH = 200


class ValidationUtils:
    """Utility class for validating text before it is decoded."""

    @staticmethod
    def validate_text(text: str) -> ValidationResult:
        """
        Validate text syntax without raising.

        Args:
            text: Text to validate

        Returns:
            ValidationResult with validation details
        """
        from ..parser import ValueParser

        errors = []
        warnings = []

        if not isinstance(text, str):
            errors.append(ValidationError(
                type=ErrorType.PARSE,
                message=f"Input must be text, got {type(text).__name__}",
                location="input"
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

        if not text.strip():
            errors.append(ValidationError(
                type=ErrorType.PARSE,
                message="Input text is empty",
                location="input"
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

        try:
            root = ValueParser().parse(text)
        except ParseError as e:
            errors.append(ValidationError(
                type=ErrorType.PARSE,
                message=str(e),
                location=_snippet(e.text)
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)
        except RecursionError:
            errors.append(ValidationError(
                type=ErrorType.PARSE,
                message="Nesting too deep to parse",
                location="input"
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

        escape_errors, max_depth = ValidationUtils._inspect_tree(root)
        errors.extend(escape_errors)

        if max_depth > MAX_SAFE_DEPTH:
            warnings.append(f"Deep nesting detected (depth: {max_depth}). "
                            f"Decoding may exceed the recursion limit.")
        if text.strip() == "[]":
            warnings.append("'[]' decodes to null, not to an empty array")

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings
        )

    @staticmethod
    def _inspect_tree(root: Value) -> Tuple[List[ValidationError], int]:
        """Check string escapes and measure nesting depth without recursion."""
        errors = []
        max_depth = 0
        stack = [(root, 0)]

        while stack:
            value, depth = stack.pop()
            max_depth = max(max_depth, depth)

            if isinstance(value, StringValue):
                try:
                    value.text
                except ParseError as e:
                    errors.append(ValidationError(
                        type=ErrorType.PARSE,
                        message=str(e),
                        location=_snippet(value.raw)
                    ))
            elif isinstance(value, ObjectValue):
                for pair in value:
                    stack.append((pair.name, depth + 1))
                    stack.append((pair.value, depth + 1))
            elif isinstance(value, ArrayValue):
                stack.extend((item, depth + 1) for item in value)

        return errors, max_depth


def _snippet(text, limit: int = 40) -> str:
    if text is None:
        return "input"
    return text if len(text) <= limit else text[:limit] + "..."
