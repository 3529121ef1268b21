"""Parser turning text into value trees."""

import logging
from typing import List, Optional, Union

from .scanner import Span, as_span
from .types import ParseError
from .values import (
    FALSE,
    NULL,
    TRUE,
    ArrayValue,
    NameValue,
    NumberValue,
    ObjectValue,
    StringValue,
    Value,
)


_LITERALS = {"null": NULL, "true": TRUE, "false": FALSE}


class ValueParser:
    """
    Recursive parser over :class:`Span` views.

    Dispatches on the first character of each trimmed span. Numbers are not
    validated here; their digits are checked only when converted.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the parser.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    def parse(self, text: Union[str, Span]) -> Value:
        """
        Parse text into a value tree.

        Args:
            text: Text or span to parse

        Returns:
            Root value of the tree

        Raises:
            ParseError: If brackets, quotes or pairs are malformed
        """
        span = as_span(text).trim()

        if not len(span):
            raise ParseError("Cannot parse empty text", str(span))

        for literal, singleton in _LITERALS.items():
            if span == literal:
                return singleton

        first = span.first
        if first == '{':
            return self.parse_object(span)
        if first == '[':
            return self.parse_array(span)
        if first == '"':
            return self.parse_string(span)

        return NumberValue(str(span))

    def parse_object(self, span: Span) -> ObjectValue:
        self._require_enclosed(span, '{', '}')

        pairs: List[NameValue] = []
        for part in span.narrow(1, 1).split(','):
            part = part.trim()
            if not len(part):
                continue
            pairs.append(self.parse_pair(part))

        return ObjectValue(tuple(pairs))

    def parse_pair(self, span: Span) -> NameValue:
        halves = span.partition(':')
        if halves is None:
            raise ParseError("Expected 'name:value' pair", str(span))

        name, value = halves
        name = name.trim()
        if not len(name) or name.first != '"':
            raise ParseError("Pair name must be a quoted string", str(span))

        return NameValue(self.parse_string(name), self.parse(value))

    def parse_array(self, span: Span) -> Value:
        # "[]" decodes to null, not to an empty array.
        if span == "[]":
            return NULL

        self._require_enclosed(span, '[', ']')

        values = []
        for part in span.narrow(1, 1).split(','):
            if not len(part.trim()):
                continue
            values.append(self.parse(part))

        return ArrayValue(tuple(values))

    def parse_string(self, span: Span) -> StringValue:
        if len(span) < 2 or span.first != '"' or span.last != '"':
            raise ParseError("String literal must be enclosed in double quotes", str(span))

        if span.closing_index() != span.end:
            raise ParseError("Unescaped double quote inside string literal", str(span))

        return StringValue(str(span))

    def _require_enclosed(self, span: Span, opener: str, closer: str) -> None:
        if span.first != opener or span.last != closer:
            raise ParseError(f"Expected text enclosed in '{opener}{closer}'", str(span))

        if span.closing_index() != span.end:
            raise ParseError(f"Unbalanced '{opener}{closer}' brackets", str(span))
