"""Mapping between Python values of known types and value trees."""

import collections.abc
import inspect
import logging
import math
import re
import types as pytypes
import typing
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from .types import ArrayType, ConversionError
from .values import (
    NULL,
    ArrayValue,
    FalseValue,
    NameValue,
    NullValue,
    NumberValue,
    ObjectValue,
    StringValue,
    TrueValue,
    Value,
    boolean,
)


logger = logging.getLogger(__name__)

_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,7}))?(Z|[+-]\d{2}:\d{2})?$"
)
_DURATION_RE = re.compile(r"^(-)?(?:(\d+)\.)?(\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{1,7}))?$")
_INTEGER_RE = re.compile(r"^-?\d+$")
_NUMBER_RE = re.compile(r"^-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?$")

_NUMBER_PARSERS: Dict[Any, Callable[[str], Any]] = {
    float: float,
    int: int,
    Decimal: Decimal,
    np.float64: lambda digits: np.float64(float(digits)),
    np.float32: lambda digits: np.float32(float(digits)),
    np.int64: lambda digits: np.int64(int(digits)),
    np.int32: lambda digits: np.int32(int(digits)),
}

_TEXT_TYPES = (str, uuid.UUID, datetime, timedelta, type)
_BOOL_TYPES = (bool, np.bool_)

_UNION_TYPES = (typing.Union, getattr(pytypes, "UnionType", typing.Union))
_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence,
                     collections.abc.Iterable)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


# ---------------------------------------------------------------------------
# Type hint helpers
# ---------------------------------------------------------------------------

def is_any(tp: Any) -> bool:
    """True for targets carrying no usable type information."""
    return (tp is Any or tp is object or tp is inspect.Parameter.empty
            or isinstance(tp, (typing.TypeVar, typing.ForwardRef, str)))


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """Strip ``Optional``; unions of several concrete types degrade to ``Any``."""
    if typing.get_origin(tp) in _UNION_TYPES:
        args = [arg for arg in typing.get_args(tp) if arg is not type(None)]
        optional = len(args) < len(typing.get_args(tp))
        return (args[0] if len(args) == 1 else Any), optional
    return tp, False


def origin_class(tp: Any) -> Any:
    """Return the runtime class behind a parameterized type hint."""
    return typing.get_origin(tp) or tp


def type_hints(target: Any) -> Dict[str, Any]:
    """Resolved annotations of a class or function; raw ones if resolution fails."""
    if target is None:
        return {}
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError) as e:
        logger.debug(f"Falling back to raw annotations for {target!r}: {e}")
        return dict(getattr(target, "__annotations__", {}) or {})


def is_namedtuple(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, "_fields")


def sequence_shape(tp: Any) -> Optional[Tuple[str, Any]]:
    """
    Classify an array target.

    Returns:
        ``("list", element)``, ``("tuple", element)``, ``("fixed", elements)``,
        ``("ndarray", ArrayType)`` or None when ``tp`` is not an array type.
        A bare ``np.ndarray`` yields ``("ndarray", None)``: its rank is read
        from the converted value.
    """
    if isinstance(tp, ArrayType):
        return "ndarray", tp
    if tp is np.ndarray or typing.get_origin(tp) is np.ndarray:
        return "ndarray", None
    if is_namedtuple(tp):
        return None

    origin = origin_class(tp)
    args = typing.get_args(tp)

    if origin is tuple:
        if not args:
            return "tuple", Any
        if len(args) == 2 and args[1] is Ellipsis:
            return "tuple", args[0]
        return "fixed", args

    if origin in _SEQUENCE_ORIGINS:
        return "list", args[0] if args else Any

    return None


def is_mapping_type(tp: Any) -> bool:
    origin = origin_class(tp)
    return origin in _MAPPING_ORIGINS


def is_scalar_type(tp: Any) -> bool:
    """True for target types that never map to a composite."""
    if not isinstance(tp, type):
        return False
    return (issubclass(tp, Enum) or tp in _TEXT_TYPES or tp in _BOOL_TYPES
            or tp in _NUMBER_PARSERS)


# ---------------------------------------------------------------------------
# Well-known textual forms
# ---------------------------------------------------------------------------

def format_datetime(value: datetime) -> str:
    """
    Round-trip timestamp text with seven fraction digits.

    Naive timestamps carry no suffix, UTC ones end in ``Z`` and any other
    offset is written as ``+HH:MM``.
    """
    text = (f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
            f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
            f".{value.microsecond:06d}0")

    offset = value.utcoffset()
    if offset is None:
        return text
    if value.tzinfo is timezone.utc:
        return text + "Z"

    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def parse_datetime(text: str) -> datetime:
    match = _DATETIME_RE.match(text)
    if not match:
        raise ConversionError(f"Invalid timestamp text: {text}", text, datetime)

    year, month, day, hour, minute, second = (int(part) for part in match.group(1, 2, 3, 4, 5, 6))
    fraction = (match.group(7) or "").ljust(7, "0")
    suffix = match.group(8)

    tzinfo = None
    if suffix == "Z":
        # Trailing Z always means UTC, never local time.
        tzinfo = timezone.utc
    elif suffix:
        sign = -1 if suffix[0] == "-" else 1
        tzinfo = timezone(sign * timedelta(hours=int(suffix[1:3]), minutes=int(suffix[4:6])))

    try:
        return datetime(year, month, day, hour, minute, second, int(fraction[:6]), tzinfo=tzinfo)
    except ValueError as e:
        raise ConversionError(f"Invalid timestamp text: {text}", text, datetime) from e


def format_duration(value: timedelta) -> str:
    """Duration text ``[-][d.]hh:mm:ss[.fffffff]``."""
    total = (value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds
    sign = "-" if total < 0 else ""
    seconds, micro = divmod(abs(total), 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    text = f"{sign}{days}." if days else sign
    text += f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if micro:
        text += f".{micro:06d}0"
    return text


def parse_duration(text: str) -> timedelta:
    match = _DURATION_RE.match(text)
    if not match:
        raise ConversionError(f"Invalid duration text: {text}", text, timedelta)

    negative, days, hours, minutes, seconds, fraction = match.groups()
    if int(hours) > 23 or int(minutes) > 59 or int(seconds) > 59:
        raise ConversionError(f"Duration component out of range: {text}", text, timedelta)

    duration = timedelta(days=int(days or 0), hours=int(hours), minutes=int(minutes),
                         seconds=int(seconds),
                         microseconds=int((fraction or "").ljust(7, "0")[:6]))
    return -duration if negative else duration


def format_number(value: Any) -> str:
    """
    Locale-independent number text: ``.`` decimal point, no grouping.

    Raises:
        ConversionError: For NaN and infinities, which have no number text
    """
    if isinstance(value, np.integer):
        return str(int(value))
    if isinstance(value, (float, np.floating)) and not math.isfinite(value):
        raise ConversionError(f"Non-finite number {value} cannot be written", value, type(value))
    if isinstance(value, Decimal) and not value.is_finite():
        raise ConversionError(f"Non-finite number {value} cannot be written", value, type(value))
    return str(value)


def _numpy_dtype(element_type: Any) -> Any:
    element_type = unwrap_optional(element_type)[0]
    if isinstance(element_type, type) and (element_type in _NUMBER_PARSERS
                                           or element_type in _BOOL_TYPES) \
            and element_type is not Decimal:
        return np.dtype(element_type)
    return np.dtype(object)


def _array_dtype(element_type: Any, items: list) -> Any:
    """Element dtype; untyped all-numeric elements pick their own."""
    dtype = _numpy_dtype(element_type)
    if (dtype == np.dtype(object) and is_any(unwrap_optional(element_type)[0]) and items
            and all(isinstance(item, (bool, int, float)) for item in items)):
        return np.asarray(items).dtype
    return dtype


# ---------------------------------------------------------------------------
# Mapper
# ---------------------------------------------------------------------------

class TypeMapper:
    """
    Maps primitives, well-known value types and containers in both directions.

    Composites are handed back to the owning converter, which also supplies
    the type registry for ``type`` values.
    """

    def __init__(self, converter, logger: Optional[logging.Logger] = None):
        """
        Initialize the type mapper.

        Args:
            converter: Owning ReflectiveConverter, used for composites
            logger: Optional logger instance
        """
        self.converter = converter
        self.logger = logger or logging.getLogger(__name__)

    @property
    def registry(self):
        return self.converter.registry

    # -- object -> Value ----------------------------------------------------

    def to_value(self, obj: Any, declared_type: Any = Any) -> Value:
        """
        Map ``obj`` to a value using ``declared_type`` as the static expectation.

        Raises:
            ConversionError: If a mapping key is not a string or a composite
                does not match its declared class
        """
        declared_type = unwrap_optional(declared_type)[0]

        if obj is None:
            return NULL
        if isinstance(obj, Enum):
            return StringValue.from_text(obj.name)
        if is_namedtuple(type(obj)):
            return self.converter.composite_to_value(obj, declared_type)
        if isinstance(obj, (list, tuple)):
            return self._sequence_to_value(obj, declared_type)
        if isinstance(obj, np.ndarray):
            return self._ndarray_to_value(obj, declared_type)
        if isinstance(obj, str):
            return StringValue.from_text(obj)
        if isinstance(obj, uuid.UUID):
            return StringValue.from_text(str(obj))
        if isinstance(obj, datetime):
            return StringValue.from_text(format_datetime(obj))
        if isinstance(obj, timedelta):
            return StringValue.from_text(format_duration(obj))
        if isinstance(obj, type):
            return StringValue.from_text(self.registry.identify(obj))
        if isinstance(obj, _BOOL_TYPES):
            return boolean(bool(obj))
        if isinstance(obj, (int, float, Decimal, np.integer, np.floating)):
            return NumberValue(format_number(obj))
        if isinstance(obj, dict):
            return self._mapping_to_value(obj, declared_type)

        return self.converter.composite_to_value(obj, declared_type)

    def _sequence_to_value(self, items, declared_type: Any) -> ArrayValue:
        shape = sequence_shape(declared_type)

        if shape and shape[0] == "fixed" and len(shape[1]) == len(items):
            element_types = list(shape[1])
        elif shape and shape[0] in ("list", "tuple"):
            element_types = [shape[1]] * len(items)
        else:
            element_types = [Any] * len(items)

        return ArrayValue(tuple(self.to_value(item, element_type)
                                for item, element_type in zip(items, element_types)))

    def _ndarray_to_value(self, array: np.ndarray, declared_type: Any) -> ArrayValue:
        if isinstance(declared_type, ArrayType) and not is_any(declared_type.element_type):
            element_type = declared_type.element_type
        elif array.dtype != np.dtype(object):
            element_type = array.dtype.type
        else:
            element_type = Any

        if array.ndim <= 1:
            return ArrayValue(tuple(self.to_value(item, element_type) for item in array))

        lengths = ArrayValue(tuple(NumberValue(str(length)) for length in array.shape))
        # ndarray.flat walks row-major order whatever the memory layout.
        elements = ArrayValue(tuple(self.to_value(item, element_type) for item in array.flat))
        return ArrayValue((lengths, elements))

    def _mapping_to_value(self, mapping: dict, declared_type: Any) -> ObjectValue:
        args = typing.get_args(declared_type) if is_mapping_type(declared_type) else ()
        value_type = args[1] if len(args) == 2 else Any

        pairs = []
        for key, item in mapping.items():
            if not isinstance(key, str):
                raise ConversionError(f"Mapping keys must be strings, got {type(key).__name__}",
                                      key, str)
            pairs.append(NameValue(StringValue.from_text(key), self.to_value(item, value_type)))
        return ObjectValue(tuple(pairs))

    # -- Value -> object ----------------------------------------------------

    def convert(self, value: Value, target_type: Any = Any) -> Any:
        """
        Convert ``value`` to an instance of ``target_type``.

        Raises:
            ConversionError: If the value variant cannot satisfy the target
            ConstructionError: If a composite cannot be built
        """
        target_type, optional = unwrap_optional(target_type)

        if isinstance(value, NullValue):
            # Null also stands for an empty array, so array targets never read back as None.
            if optional and sequence_shape(target_type) is None:
                return None
            return self._convert_null(target_type)
        if isinstance(value, (TrueValue, FalseValue)):
            return self._convert_bool(value, target_type)
        if isinstance(value, StringValue):
            return self._convert_string(value, target_type)
        if isinstance(value, NumberValue):
            return self._convert_number(value, target_type)
        if isinstance(value, ArrayValue):
            return self._convert_array(value, target_type)
        if isinstance(value, ObjectValue):
            if is_mapping_type(target_type):
                return self._convert_mapping(value, target_type)
            if is_scalar_type(target_type) or sequence_shape(target_type):
                raise ConversionError(f"Object >> {_name(target_type)}", value, target_type)
            return self.converter.object_to_composite(value, target_type)

        raise ConversionError(f"Unsupported value {value!r}", value, target_type)

    def _convert_null(self, target_type: Any) -> Any:
        if is_any(target_type):
            return None

        shape = sequence_shape(target_type)
        if shape:
            kind, element = shape
            if kind == "list":
                return []
            if kind == "ndarray":
                element = element or ArrayType(Any)
                return np.empty((0,) * element.rank, dtype=_numpy_dtype(element.element_type))
            return ()

        cls = origin_class(target_type)
        if isinstance(cls, type) and not is_scalar_type(cls) and not is_mapping_type(cls):
            factory = self.converter.parameterless_constructor(cls)
            if factory is not None:
                return factory()

        return None

    def _convert_bool(self, value: Value, target_type: Any) -> Any:
        flag = isinstance(value, TrueValue)
        if target_type is bool or is_any(target_type):
            return flag
        if target_type is np.bool_:
            return np.bool_(flag)
        raise ConversionError(f"{value.to_text()} >> {_name(target_type)}", value, target_type)

    def _convert_string(self, value: StringValue, target_type: Any) -> Any:
        text = value.text

        if target_type is str or is_any(target_type):
            return text
        if target_type is uuid.UUID:
            try:
                return uuid.UUID(text)
            except ValueError as e:
                raise ConversionError(f"Invalid unique identifier: {text}", value, target_type) from e
        if target_type is datetime:
            return parse_datetime(text)
        if target_type is timedelta:
            return parse_duration(text)
        if target_type is type or origin_class(target_type) is type:
            return self.registry.resolve(text)
        if isinstance(target_type, type) and issubclass(target_type, Enum):
            try:
                return target_type[text]
            except KeyError as e:
                raise ConversionError(f"{text} is not a member of {target_type.__name__}",
                                      value, target_type) from e

        raise ConversionError(f"String >> {_name(target_type)}", value, target_type)

    def _convert_number(self, value: NumberValue, target_type: Any) -> Any:
        digits = value.digits

        if not _NUMBER_RE.match(digits):
            raise ConversionError(f"{digits!r} is not a number", value, target_type)

        if is_any(target_type):
            target_type = int if _INTEGER_RE.match(digits) else float

        parser = _NUMBER_PARSERS.get(target_type)
        if parser is None:
            raise ConversionError(f"Number >> {_name(target_type)}", value, target_type)

        try:
            return parser(digits)
        except (ValueError, OverflowError, InvalidOperation) as e:
            raise ConversionError(f"Cannot read {digits!r} as {_name(target_type)}",
                                  value, target_type) from e

    def _convert_array(self, value: ArrayValue, target_type: Any) -> Any:
        if is_any(target_type):
            return [self.convert(item, Any) for item in value]

        shape = sequence_shape(target_type)
        if shape is None:
            raise ConversionError(f"An Array can not be converted to {_name(target_type)}",
                                  value, target_type)

        kind, element = shape
        if kind == "list":
            return [self.convert(item, element) for item in value]
        if kind == "tuple":
            return tuple(self.convert(item, element) for item in value)
        if kind == "fixed":
            if len(element) != len(value):
                raise ConversionError(f"Expected {len(element)} elements, got {len(value)}",
                                      value, target_type)
            return tuple(self.convert(item, item_type) for item, item_type in zip(value, element))

        return self._convert_ndarray(value, element or self._infer_array_type(value))

    def _infer_array_type(self, value: ArrayValue) -> ArrayType:
        """
        Rank of a value read into a bare ``np.ndarray`` target.

        Flat values are rank 1. A ``[lengths, elements]`` pair qualifies as
        multi-dimensional when there are at least two non-negative integer
        lengths whose product is the element count.

        Raises:
            ConversionError: If nested arrays match neither form
        """
        if not any(isinstance(item, (ArrayValue, ObjectValue)) for item in value):
            return ArrayType(Any)

        if len(value) == 2 and isinstance(value[0], ArrayValue) and len(value[0]) >= 2:
            lengths, elements = value[0], value[1]
            if (all(isinstance(length, NumberValue) and length.digits.isdigit() for length in lengths)
                    and isinstance(elements, (ArrayValue, NullValue))):
                count = len(elements) if isinstance(elements, ArrayValue) else 0
                if math.prod(int(length.digits) for length in lengths) == count:
                    return ArrayType(Any, rank=len(lengths))

        raise ConversionError("Nested arrays need an ArrayType annotation giving element type and rank",
                              value, np.ndarray)

    def _convert_ndarray(self, value: ArrayValue, array_type: ArrayType) -> np.ndarray:
        if array_type.rank == 1:
            items = [self.convert(item, array_type.element_type) for item in value]
            array = np.empty(len(items), dtype=_array_dtype(array_type.element_type, items))
            for index, item in enumerate(items):
                array[index] = item
            return array

        if len(value) != 2:
            raise ConversionError("A multi-dimensional array needs [lengths, elements]",
                                  value, array_type)

        lengths = self.convert(value[0], List[int])
        elements = self.convert(value[1], List[array_type.element_type])
        if len(lengths) != array_type.rank:
            raise ConversionError(f"Expected {array_type.rank} lengths, got {len(lengths)}",
                                  value, array_type)

        array = np.empty(tuple(lengths), dtype=_array_dtype(array_type.element_type, elements))
        if len(elements) != array.size:
            raise ConversionError(f"Expected {array.size} elements, got {len(elements)}",
                                  value, array_type)

        indices = [0] * array_type.rank
        for element in elements:
            array[tuple(indices)] = element
            for dimension in reversed(range(array_type.rank)):
                indices[dimension] += 1
                if indices[dimension] < lengths[dimension]:
                    break
                indices[dimension] = 0

        return array

    def _convert_mapping(self, value: ObjectValue, target_type: Any) -> dict:
        args = typing.get_args(target_type)
        value_type = args[1] if len(args) == 2 else Any
        return {pair.name.text: self.convert(pair.value, value_type) for pair in value}


def _name(target_type: Any) -> str:
    return getattr(target_type, "__name__", None) or repr(target_type)
