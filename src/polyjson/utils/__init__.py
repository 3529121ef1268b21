"""Utility functions for polyjson."""

from .escaping import decode_escape, encode_escape, quote

__all__ = ["decode_escape", "encode_escape", "quote"]
