"""Zero-copy text spans with bracket-aware splitting."""

from typing import Iterator, Optional, Tuple, Union

from .types import ParseError


_BODIES = {'[': ']', '{': '}', '(': ')', '<': '>'}
_QUOTE = '"'
_ESCAPE = '\\'


class Span:
    """
    Immutable view over a slice of a string.

    Narrowing and splitting only move the ``start``/``end`` bounds; the
    underlying text is never copied until :meth:`__str__` is called.
    Delimiters nested inside ``[]``, ``{}``, ``()``, ``<>`` bodies or inside
    double-quoted literals are not considered top level.
    """

    __slots__ = ("text", "start", "end")

    def __init__(self, text: str, start: int = 0, end: Optional[int] = None):
        if end is None:
            end = len(text)
        if not 0 <= start <= end <= len(text):
            raise ValueError(f"Invalid span bounds [{start}:{end}] for text of length {len(text)}")
        self.text = text
        self.start = start
        self.end = end

    def __len__(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return self.text[self.start:self.end]

    def __repr__(self) -> str:
        return f"Span({str(self)!r})"

    def __eq__(self, other) -> bool:
        if isinstance(other, Span):
            return str(self) == str(other)
        if isinstance(other, str):
            return len(self) == len(other) and self.text.startswith(other, self.start)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))

    def __getitem__(self, index: int) -> str:
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError(index)
        return self.text[self.start + index]

    @property
    def first(self) -> str:
        return self[0]

    @property
    def last(self) -> str:
        return self[-1]

    def narrow(self, head: int, tail: int = 0) -> "Span":
        """Drop ``head`` characters from the start and ``tail`` from the end."""
        return Span(self.text, self.start + head, self.end - tail)

    def trim(self) -> "Span":
        """Narrow the bounds past leading and trailing whitespace."""
        start, end = self.start, self.end
        while start < end and self.text[start].isspace():
            start += 1
        while end > start and self.text[end - 1].isspace():
            end -= 1
        return Span(self.text, start, end)

    def split(self, delimiter: str, keep_empty: bool = False) -> Iterator["Span"]:
        """
        Yield the top-level sub-spans between occurrences of ``delimiter``.

        Args:
            delimiter: Single delimiter character
            keep_empty: Also yield zero-length entries

        Raises:
            ParseError: If a nested body or literal is unterminated
        """
        text = self.text
        pos = origin = self.start

        while pos < self.end:
            skipped = self._skip_nested(pos)
            if skipped is not None:
                pos = skipped
                continue

            if text[pos] == delimiter:
                if keep_empty or pos > origin:
                    yield Span(text, origin, pos)
                origin = pos + 1

            pos += 1

        if keep_empty or pos > origin:
            yield Span(text, origin, pos)

    def partition(self, delimiter: str) -> Optional[Tuple["Span", "Span"]]:
        """Split on the first top-level ``delimiter``; ``None`` if there is none."""
        pos = self.start

        while pos < self.end:
            skipped = self._skip_nested(pos)
            if skipped is not None:
                pos = skipped
                continue

            if self.text[pos] == delimiter:
                return Span(self.text, self.start, pos), Span(self.text, pos + 1, self.end)

            pos += 1

        return None

    def closing_index(self) -> int:
        """
        Absolute index just past the body or literal opening at ``start``.

        Raises:
            ParseError: If the span does not open a body or literal, or it is unterminated
        """
        if not len(self):
            raise ParseError("Empty text has no body", str(self))

        closed = self._skip_nested(self.start)
        if closed is None:
            raise ParseError(f"'{self.first}' does not open a body or literal", str(self))

        return closed

    def _skip_nested(self, pos: int) -> Optional[int]:
        char = self.text[pos]

        if char in _BODIES:
            return self._skip_body(pos, _BODIES[char])

        if char == _QUOTE:
            return self._skip_literal(pos)

        return None

    def _skip_body(self, pos: int, closer: str) -> int:
        opened_at = pos
        pos += 1

        while pos < self.end:
            if self.text[pos] == closer:
                return pos + 1

            skipped = self._skip_nested(pos)
            pos = skipped if skipped is not None else pos + 1

        raise ParseError(f"Unterminated '{self.text[opened_at]}' body, expected '{closer}'",
                         self.text[opened_at:self.end])

    def _skip_literal(self, pos: int) -> int:
        opened_at = pos
        pos += 1

        while pos < self.end:
            char = self.text[pos]
            if char == _ESCAPE:
                pos += 2
                continue
            if char == _QUOTE:
                return pos + 1
            pos += 1

        raise ParseError("Unterminated string literal", self.text[opened_at:self.end])


def as_span(text: Union[str, Span]) -> Span:
    """Wrap ``text`` in a span unless it already is one."""
    if isinstance(text, Span):
        return text
    if not isinstance(text, str):
        raise TypeError(f"Expected str or Span, got {type(text).__name__}")
    return Span(text)
