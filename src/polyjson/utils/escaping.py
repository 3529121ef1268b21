"""String escaping for quoted literals."""

from typing import Dict

from ..types import ParseError


_ENCODE: Dict[str, str] = {
    '"': '\\"',
    '\\': '\\\\',
    '\b': '\\b',
    '\f': '\\f',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
}

_DECODE: Dict[str, str] = {escaped[1]: char for char, escaped in _ENCODE.items()}


def encode_escape(text: str) -> str:
    """Escape the seven recognized control characters; everything else passes through."""
    return "".join(_ENCODE.get(char, char) for char in text)


def decode_escape(text: str) -> str:
    """
    Reverse of :func:`encode_escape`.

    Raises:
        ParseError: On an unrecognized or dangling escape sequence
    """
    chars = []
    escaping = False

    for char in text:
        if escaping:
            decoded = _DECODE.get(char)
            if decoded is None:
                raise ParseError(f"Unrecognized escape character \\{char}", text)
            chars.append(decoded)
            escaping = False
        elif char == '\\':
            escaping = True
        else:
            chars.append(char)

    if escaping:
        raise ParseError("Dangling escape character at end of string", text)

    return "".join(chars)


def quote(text: str) -> str:
    """Escape ``text`` and wrap it in double quotes."""
    return f'"{encode_escape(text)}"'
