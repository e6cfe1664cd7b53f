"""Cursor encoding and decoding for keyset pagination.

Cursors are opaque strings that encode the position in a result set: the
sort-field values of the last row served, the signature of the sort order
they were taken under and a format version. Clients pass them back unchanged.

Binary layout (before URL-safe base64 without padding):

    version:u8 | signature:16 | field_count:u8 | field* | mac:16

    field = tag:u8 | length:u16 | payload

Each value carries an explicit type tag so heterogeneous tuples such as
``(datetime, int)`` decode to exactly the values that were encoded. The
trailing MAC is a truncated HMAC-SHA256 over everything before it, so a
client cannot edit the embedded values or forge a position.

Nothing outside this module reads the layout; changing it means bumping
``CURSOR_VERSION``.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import struct
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pagination_engine.core.exceptions import InvalidCursorError
from pagination_engine.core.pagination.guard import ConsistencyGuard
from pagination_engine.core.pagination.sorting import SIGNATURE_SIZE

if TYPE_CHECKING:
    from pagination_engine.core.pagination.sorting import SortSpec

CURSOR_VERSION = 1

MAC_SIZE = 16
MAX_FIELDS = 255
MAX_PAYLOAD = 0xFFFF

_HEADER = struct.Struct(f">B{SIGNATURE_SIZE}sB")
_FIELD_HEADER = struct.Struct(">cH")
_FLOAT = struct.Struct(">d")

# Tags are single ASCII bytes; the wire format depends on these values.
TAG_NONE = b"n"
TAG_BOOL = b"b"
TAG_INT = b"i"
TAG_FLOAT = b"f"
TAG_STR = b"s"
TAG_BYTES = b"y"
TAG_DECIMAL = b"D"
TAG_UUID = b"u"
TAG_DATETIME = b"t"
TAG_DATE = b"d"


@dataclass(slots=True, frozen=True)
class DecodedCursor:
    """Result of decoding a cursor token.

    Attributes:
        values: Sort-field values, one per SortSpec entry.
        signature: Signature of the SortSpec the cursor was minted under.
        version: Format version byte the token was written with.
    """

    values: tuple[Any, ...]
    signature: bytes
    version: int = CURSOR_VERSION


class CursorCodec:
    """Encode and decode opaque, tamper-evident pagination cursors.

    Usage:
        codec = CursorCodec(secret="change-me")

        token = codec.encode((created_at, 42), spec.signature)
        decoded = codec.decode(token, expected=spec)
        decoded.values  # (created_at, 42)
    """

    __slots__ = ("_secret", "_version")

    def __init__(self, secret: str | bytes, *, version: int = CURSOR_VERSION) -> None:
        """Initialize codec.

        Args:
            secret: HMAC key used to sign tokens. Rotating it invalidates
                every outstanding cursor.
            version: Format version written into new tokens.
        """
        if not secret:
            raise ValueError("Cursor secret must not be empty")
        if version != CURSOR_VERSION:
            raise ValueError(f"Unsupported cursor version {version}")
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    def encode(self, values: Sequence[Any], signature: bytes) -> str:
        """Encode sort-field values and a sort signature into a token.

        Args:
            values: Field values in SortSpec order.
            signature: ``SortSpec.signature`` of the ordering in use.

        Returns:
            URL-safe base64 string without padding.

        Raises:
            TypeError: If a value has no wire representation.
            ValueError: If the tuple or a single value is too large to encode.
        """
        if len(signature) != SIGNATURE_SIZE:
            raise ValueError(f"Signature must be {SIGNATURE_SIZE} bytes")
        if len(values) > MAX_FIELDS:
            raise ValueError(f"Cursor supports at most {MAX_FIELDS} fields")

        parts = [_HEADER.pack(self._version, signature, len(values))]
        for value in values:
            tag, payload = _encode_value(value)
            if len(payload) > MAX_PAYLOAD:
                raise ValueError(f"Cursor value too large ({len(payload)} bytes)")
            parts.append(_FIELD_HEADER.pack(tag, len(payload)))
            parts.append(payload)

        body = b"".join(parts)
        raw = body + self._mac(body)
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    def decode(self, token: str, *, expected: SortSpec | None = None) -> DecodedCursor:
        """Decode a token produced by ``encode``.

        Args:
            token: Cursor string received from the client.
            expected: When given, the decoded cursor is also checked against
                this SortSpec (signature and arity).

        Returns:
            DecodedCursor with the original values and signature.

        Raises:
            InvalidCursorError: If the token is malformed, truncated, signed
                with another key or written in an unknown version.
            CursorSortMismatchError: If ``expected`` is given and the cursor
                belongs to a different ordering.
        """
        raw = _b64decode(token)

        if len(raw) < _HEADER.size + MAC_SIZE:
            raise InvalidCursorError("token truncated")

        body, mac = raw[:-MAC_SIZE], raw[-MAC_SIZE:]
        if not hmac.compare_digest(mac, self._mac(body)):
            raise InvalidCursorError("checksum mismatch")

        version, signature, count = _HEADER.unpack_from(body, 0)
        if version != self._version:
            raise InvalidCursorError(f"unsupported version {version}")

        offset = _HEADER.size
        values: list[Any] = []
        for _ in range(count):
            if offset + _FIELD_HEADER.size > len(body):
                raise InvalidCursorError("field header truncated")
            tag, length = _FIELD_HEADER.unpack_from(body, offset)
            offset += _FIELD_HEADER.size
            if offset + length > len(body):
                raise InvalidCursorError("field payload truncated")
            values.append(_decode_value(tag, body[offset : offset + length]))
            offset += length

        if offset != len(body):
            raise InvalidCursorError("trailing bytes")

        decoded = DecodedCursor(values=tuple(values), signature=signature, version=version)
        if expected is not None:
            ConsistencyGuard.validate(decoded, expected)
        return decoded

    def encode_row(self, row: Any, sort: SortSpec) -> str:
        """Create a cursor pointing just after ``row`` under ``sort``."""
        return self.encode(sort.values_of(row), sort.signature)

    def _mac(self, body: bytes) -> bytes:
        return hmac.new(self._secret, body, hashlib.sha256).digest()[:MAC_SIZE]


def _b64decode(token: str) -> bytes:
    if not isinstance(token, str) or not token:
        raise InvalidCursorError("empty token")
    try:
        ascii_token = token.encode("ascii")
    except UnicodeEncodeError as e:
        raise InvalidCursorError("non-ascii token") from e
    padded = ascii_token + b"=" * (-len(ascii_token) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidCursorError("not base64url") from e


def _encode_value(value: Any) -> tuple[bytes, bytes]:
    # bool before int, datetime before date: both are subclasses.
    if value is None:
        return TAG_NONE, b""
    if isinstance(value, bool):
        return TAG_BOOL, b"\x01" if value else b"\x00"
    if isinstance(value, int):
        width = value.bit_length() // 8 + 1
        return TAG_INT, value.to_bytes(width, "big", signed=True)
    if isinstance(value, float):
        return TAG_FLOAT, _FLOAT.pack(value)
    if isinstance(value, str):
        return TAG_STR, value.encode("utf-8")
    if isinstance(value, bytes | bytearray | memoryview):
        return TAG_BYTES, bytes(value)
    if isinstance(value, Decimal):
        return TAG_DECIMAL, str(value).encode("ascii")
    if isinstance(value, UUID):
        return TAG_UUID, value.bytes
    if isinstance(value, datetime):
        return TAG_DATETIME, value.isoformat().encode("ascii")
    if isinstance(value, date):
        return TAG_DATE, value.isoformat().encode("ascii")
    raise TypeError(f"Cannot encode cursor value of type {type(value).__name__}")


def _decode_value(tag: bytes, payload: bytes) -> Any:
    try:
        if tag == TAG_NONE:
            if payload:
                raise ValueError("non-empty null payload")
            return None
        if tag == TAG_BOOL:
            if payload not in (b"\x00", b"\x01"):
                raise ValueError("bad bool payload")
            return payload == b"\x01"
        if tag == TAG_INT:
            if not payload:
                raise ValueError("empty int payload")
            return int.from_bytes(payload, "big", signed=True)
        if tag == TAG_FLOAT:
            return _FLOAT.unpack(payload)[0]
        if tag == TAG_STR:
            return payload.decode("utf-8")
        if tag == TAG_BYTES:
            return payload
        if tag == TAG_DECIMAL:
            return Decimal(payload.decode("ascii"))
        if tag == TAG_UUID:
            return UUID(bytes=payload)
        if tag == TAG_DATETIME:
            return datetime.fromisoformat(payload.decode("ascii"))
        if tag == TAG_DATE:
            return date.fromisoformat(payload.decode("ascii"))
    except (ValueError, struct.error, InvalidOperation, UnicodeDecodeError) as e:
        raise InvalidCursorError(f"malformed {tag!r} value") from e
    raise InvalidCursorError(f"unknown type tag {tag!r}")


__all__ = ["CURSOR_VERSION", "CursorCodec", "DecodedCursor"]
