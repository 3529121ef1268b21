"""Pytest configuration and fixtures."""

import pytest

from polyjson import JSONCodec, TypeRegistry, ValueParser
from polyjson.converter import ReflectiveConverter


@pytest.fixture
def codec():
    """Codec with its own type registry."""
    return JSONCodec(registry=TypeRegistry())


@pytest.fixture
def parser():
    return ValueParser()


@pytest.fixture
def converter():
    """Converter with its own type registry."""
    return ReflectiveConverter(registry=TypeRegistry())


@pytest.fixture
def round_trip_documents():
    """Well-formed compact documents that print back unchanged."""
    return [
        'null',
        'true',
        'false',
        '42',
        '-3.5e-7',
        '"plain"',
        '"tab\\tand \\"quote\\""',
        '{"a":1,"b":2}',
        '{}',
        '[1,[2,[3]],{"x":null}]',
        '{"name":"Ann","tags":["a","b"],"nested":{"deep":{"flag":false}}}',
        '{"text":"commas, colons: and [brackets] {braces}"}',
        '[[2,2],[1,2,3,4]]',
    ]
