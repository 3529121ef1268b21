"""Core type definitions for polyjson."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence


class ErrorType(Enum):
    """Enumeration of error types."""
    PARSE = "parse"
    CONVERSION = "conversion"
    CONSTRUCTION = "construction"
    LOOKUP = "lookup"


@dataclass
class ValidationError:
    """Validation error details."""
    type: ErrorType
    message: str
    location: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of input validation."""
    is_valid: bool
    errors: List[ValidationError]
    warnings: List[str]


@dataclass
class ErrorResponse:
    """Response for error handling."""
    can_recover: bool
    suggested_action: str
    details: Optional[Any] = None


@dataclass(frozen=True)
class ArrayType:
    """
    Declared type of a numpy array.

    Python type hints carry no array rank, so multi-dimensional targets are
    declared explicitly, e.g. ``ArrayType(float, rank=2)``.
    """
    element_type: Any
    rank: int = 1

    def __post_init__(self):
        if self.rank < 1:
            raise ValueError(f"Array rank must be positive, got {self.rank}")


class CodecError(Exception):
    """Base exception for all codec failures."""

    def __init__(self, message: str, error_type: ErrorType, context: Optional[Any] = None):
        super().__init__(message)
        self.error_type = error_type
        self.context = context


class ParseError(CodecError, ValueError):
    """Malformed text: unbalanced brackets, quotes or escapes."""

    def __init__(self, message: str, text: Optional[str] = None):
        super().__init__(message, ErrorType.PARSE, context={"text": text})
        self.text = text


class ConversionError(CodecError, TypeError):
    """A value cannot satisfy the requested target type."""

    def __init__(self, message: str, value: Optional[Any] = None, target_type: Optional[Any] = None):
        super().__init__(message, ErrorType.CONVERSION,
                         context={"value": value, "target_type": target_type})
        self.value = value
        self.target_type = target_type


class ConstructionError(CodecError):
    """No constructor or member assignment could build a composite."""

    def __init__(self, message: str, target_type: Optional[type] = None,
                 members: Sequence[str] = ()):
        super().__init__(message, ErrorType.CONSTRUCTION,
                         context={"target_type": target_type, "members": list(members)})
        self.target_type = target_type
        self.members = list(members)


class MemberLookupError(CodecError, LookupError):
    """A named member is absent from an object's pairs."""

    def __init__(self, name: str):
        super().__init__(name, ErrorType.LOOKUP, context={"name": name})
        self.name = name


# Abstract base classes for interfaces

class CodecInterface(ABC):
    """Abstract interface for the codec facade."""

    @abstractmethod
    def serialize(self, value: Any, declared_type: Optional[Any] = None) -> str:
        """Serialize an object graph into text."""
        pass

    @abstractmethod
    def deserialize(self, text: str, result_type: Any = Any) -> Any:
        """Deserialize text into an object graph of the requested type."""
        pass


class ErrorHandlerInterface(ABC):
    """Abstract interface for error handling."""

    @abstractmethod
    def validate_input(self, input_data: str) -> ValidationResult:
        """Validate input text."""
        pass

    @abstractmethod
    def handle_codec_error(self, error: CodecError) -> ErrorResponse:
        """Handle codec errors."""
        pass
