"""
polyjson - Polymorphic JSON codec.

Converts Python object graphs to compact JSON text and back, recording the
actual class of polymorphic values in single-key type envelopes.
"""

from typing import Any, Optional

from .codec import JSONCodec
from .converter import ReflectiveConverter
from .parser import ValueParser
from .scanner import Span
from .type_registry import TypeRegistry, is_type_identifier
from .types import (
    ArrayType,
    CodecError,
    ConstructionError,
    ConversionError,
    ErrorType,
    MemberLookupError,
    ParseError,
)
from .values import (
    FALSE,
    NULL,
    TRUE,
    ArrayValue,
    FalseValue,
    NameValue,
    NullValue,
    NumberValue,
    ObjectValue,
    StringValue,
    TrueValue,
    Value,
)

__version__ = "1.0.0"

_default_codec: Optional[JSONCodec] = None


def _codec() -> JSONCodec:
    global _default_codec
    if _default_codec is None:
        _default_codec = JSONCodec()
    return _default_codec


def serialize(value: Any, declared_type: Optional[Any] = None) -> str:
    """Serialize ``value`` with the shared default codec."""
    return _codec().serialize(value, declared_type)


def deserialize(text: str, result_type: Any = Any) -> Any:
    """Deserialize ``text`` into ``result_type`` with the shared default codec."""
    return _codec().deserialize(text, result_type)


__all__ = [
    "serialize",
    "deserialize",
    "JSONCodec",
    "ReflectiveConverter",
    "ValueParser",
    "Span",
    "TypeRegistry",
    "is_type_identifier",
    "ArrayType",
    "CodecError",
    "ConstructionError",
    "ConversionError",
    "ErrorType",
    "MemberLookupError",
    "ParseError",
    "Value",
    "NullValue",
    "TrueValue",
    "FalseValue",
    "NumberValue",
    "StringValue",
    "ObjectValue",
    "ArrayValue",
    "NameValue",
    "NULL",
    "TRUE",
    "FALSE",
]
