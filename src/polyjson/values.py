"""Value types: the in-memory node representation of a document."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Tuple

from .types import MemberLookupError
from .utils.escaping import decode_escape, quote


class Value(ABC):
    """
    Base class of the closed value variant family.

    Instances are immutable; a tree is built once, by parsing or by the
    object walk, and printed or converted afterwards.
    """

    @classmethod
    def parse(cls, text) -> "Value":
        """
        Parse ``text`` (a ``str`` or a ``Span``) into a value tree.

        Raises:
            ParseError: If the text is malformed
        """
        from .parser import ValueParser
        return ValueParser().parse(text)

    @abstractmethod
    def to_text(self) -> str:
        """Print the value as compact text."""
        pass

    def convert_to(self, result_type: Any = Any) -> Any:
        """Convert the value with the process-wide default converter."""
        from .converter import default_converter
        return default_converter().from_value(self, result_type)

    def __str__(self) -> str:
        return self.to_text()


@dataclass(frozen=True)
class NullValue(Value):
    def to_text(self) -> str:
        return "null"


@dataclass(frozen=True)
class TrueValue(Value):
    def to_text(self) -> str:
        return "true"


@dataclass(frozen=True)
class FalseValue(Value):
    def to_text(self) -> str:
        return "false"


NULL = NullValue()
TRUE = TrueValue()
FALSE = FalseValue()


def boolean(flag: bool) -> Value:
    """Return the TRUE or FALSE singleton."""
    return TRUE if flag else FALSE


@dataclass(frozen=True)
class NumberValue(Value):
    """Number kept as its exact digits; parsing is deferred to conversion."""
    digits: str

    def to_text(self) -> str:
        return self.digits


@dataclass(frozen=True)
class StringValue(Value):
    """String kept in its raw quoted and escaped form."""
    raw: str

    @classmethod
    def from_text(cls, text: str) -> "StringValue":
        return cls(quote(text))

    @property
    def text(self) -> str:
        """Unescaped content, computed on each access."""
        return decode_escape(self.raw[1:-1])

    def to_text(self) -> str:
        return self.raw


@dataclass(frozen=True)
class NameValue:
    name: StringValue
    value: Value

    def to_text(self) -> str:
        return f"{self.name.to_text()}:{self.value.to_text()}"

    def __str__(self) -> str:
        return self.to_text()


@dataclass(frozen=True)
class ObjectValue(Value):
    """Ordered name/value pairs; names need not be unique."""
    pairs: Tuple[NameValue, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "pairs", tuple(self.pairs))

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[NameValue]:
        return iter(self.pairs)

    def names(self) -> Tuple[str, ...]:
        return tuple(pair.name.text for pair in self.pairs)

    def get(self, name: str, ignore_case: bool = False) -> Value:
        """
        Return the value of the first pair called ``name``.

        Raises:
            MemberLookupError: If no pair has that name
        """
        wanted = name.casefold() if ignore_case else name
        for pair in self.pairs:
            candidate = pair.name.text
            if ignore_case:
                candidate = candidate.casefold()
            if candidate == wanted:
                return pair.value
        raise MemberLookupError(name)

    def to_text(self) -> str:
        return "{" + ",".join(pair.to_text() for pair in self.pairs) + "}"


@dataclass(frozen=True)
class ArrayValue(Value):
    values: Tuple[Value, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.values)

    def __getitem__(self, index: int) -> Value:
        return self.values[index]

    def to_text(self) -> str:
        return "[" + ",".join(value.to_text() for value in self.values) + "]"

