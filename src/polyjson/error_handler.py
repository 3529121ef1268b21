"""Error handling implementation for polyjson."""

import logging
from typing import Optional

from .types import (
    CodecError,
    ConstructionError,
    ConversionError,
    ErrorHandlerInterface,
    ErrorResponse,
    ErrorType,
    ParseError,
    ValidationError,
    ValidationResult,
)
from .utils.validation import ValidationUtils


class ErrorHandler(ErrorHandlerInterface):
    """
    Error handler for codec operations.

    Validates input text without raising and turns codec errors into
    logged, user-facing suggestions. Errors are never recovered from:
    every failure aborts the serialize or deserialize call that raised it.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the error handler.

        Args:
            logger: Optional logger instance for error reporting
        """
        self.logger = logger or logging.getLogger(__name__)

    def validate_input(self, input_data: str) -> ValidationResult:
        """
        Validate input text.

        Args:
            input_data: Text to validate

        Returns:
            ValidationResult with validation details
        """
        try:
            return ValidationUtils.validate_text(input_data)
        except CodecError as e:
            self.logger.error(f"Unexpected error during input validation: {e}")
            return ValidationResult(
                is_valid=False,
                errors=[ValidationError(
                    type=e.error_type,
                    message=f"Validation failed with unexpected error: {e}",
                    location="input"
                )],
                warnings=[]
            )

    def handle_codec_error(self, error: CodecError) -> ErrorResponse:
        """
        Log a codec error and describe how to fix its cause.

        Args:
            error: CodecError to handle

        Returns:
            ErrorResponse with a suggested action
        """
        self.logger.error(f"Codec error: {error.error_type.value} - {error}")

        if error.error_type == ErrorType.PARSE:
            return self._handle_parse_error(error)
        elif error.error_type == ErrorType.CONVERSION:
            return self._handle_conversion_error(error)
        elif error.error_type == ErrorType.CONSTRUCTION:
            return self._handle_construction_error(error)
        else:
            return ErrorResponse(
                can_recover=False,
                suggested_action="A named member was missing. Check the member names in the input.",
                details=error.context
            )

    def _handle_parse_error(self, error: ParseError) -> ErrorResponse:
        """Handle malformed input text."""
        return ErrorResponse(
            can_recover=False,
            suggested_action="Check the input for unbalanced brackets, unterminated strings "
                             "or unsupported escape sequences.",
            details=getattr(error, "text", None)
        )

    def _handle_conversion_error(self, error: ConversionError) -> ErrorResponse:
        """Handle values that do not fit their target type."""
        target = getattr(error, "target_type", None)
        target_name = getattr(target, "__name__", repr(target))
        return ErrorResponse(
            can_recover=False,
            suggested_action=f"The input does not match the requested type {target_name}. "
                             f"Check the declared result type and member annotations.",
            details=error.context
        )

    def _handle_construction_error(self, error: ConstructionError) -> ErrorResponse:
        """Handle composites that could not be constructed."""
        members = ", ".join(getattr(error, "members", []))
        return ErrorResponse(
            can_recover=False,
            suggested_action="Add a constructor whose parameter names match the members "
                             f"({members}), or a parameterless constructor with writable "
                             "properties.",
            details=error.context
        )
