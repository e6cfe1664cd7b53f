"""Offset and keyset pagination engine with signed, opaque cursors."""

__version__ = "0.1.0"
