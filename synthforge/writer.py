"""Big-endian primitive writers for the SCgf synthdef file format.

``BinaryWriter`` fills a buffer of a declared size and refuses to hand it out
unless exactly that many bytes were written. ``SizeCounter`` exposes the same
appender methods but only counts, so one field visitor can drive both passes.
"""

from __future__ import annotations

import struct
from typing import Protocol

from .errors import FormatError, SizeMismatchError, StringTooLongError

MAX_PSTRING_BYTES = 255

_INT8 = struct.Struct(">b")
_UINT8 = struct.Struct(">B")
_INT16 = struct.Struct(">h")
_INT32 = struct.Struct(">i")
_FLOAT32 = struct.Struct(">f")


def encode_pstring(value: str) -> bytes:
    """Return ``value`` as ASCII bytes, checking it fits a 1-byte length prefix."""

    try:
        encoded = value.encode("ascii")
    except UnicodeEncodeError as exc:
        raise StringTooLongError(f"Name must be ASCII: {value!r}") from exc
    if len(encoded) > MAX_PSTRING_BYTES:
        raise StringTooLongError(
            f"Name is {len(encoded)} bytes, limit is {MAX_PSTRING_BYTES}: {value[:32]!r}..."
        )
    return encoded


class FieldSink(Protocol):
    def raw(self, data: bytes) -> "FieldSink": ...

    def int8(self, value: int) -> "FieldSink": ...

    def int16(self, value: int) -> "FieldSink": ...

    def int32(self, value: int) -> "FieldSink": ...

    def float32(self, value: float) -> "FieldSink": ...

    def pstring(self, value: str) -> "FieldSink": ...


class SizeCounter:
    """Counts the bytes a sequence of appends would produce."""

    def __init__(self) -> None:
        self.size = 0

    def raw(self, data: bytes) -> "SizeCounter":
        self.size += len(data)
        return self

    def int8(self, value: int) -> "SizeCounter":
        self.size += _INT8.size
        return self

    def int16(self, value: int) -> "SizeCounter":
        self.size += _INT16.size
        return self

    def int32(self, value: int) -> "SizeCounter":
        self.size += _INT32.size
        return self

    def float32(self, value: float) -> "SizeCounter":
        self.size += _FLOAT32.size
        return self

    def pstring(self, value: str) -> "SizeCounter":
        self.size += 1 + len(encode_pstring(value))
        return self


class BinaryWriter:
    def __init__(self, expected_size: int) -> None:
        if expected_size < 0:
            raise ValueError("expected_size must be non-negative")
        self._buffer = bytearray(expected_size)
        self._pos = 0

    @property
    def expected_size(self) -> int:
        return len(self._buffer)

    @property
    def position(self) -> int:
        return self._pos

    def _put(self, packer: struct.Struct, value: int | float) -> "BinaryWriter":
        end = self._pos + packer.size
        if end > len(self._buffer):
            raise SizeMismatchError(
                f"Write of {packer.size} bytes at offset {self._pos} overflows "
                f"declared size {len(self._buffer)}"
            )
        try:
            packer.pack_into(self._buffer, self._pos, value)
        except (struct.error, OverflowError) as exc:
            raise FormatError(f"Cannot pack {value!r} as {packer.format}: {exc}") from exc
        self._pos = end
        return self

    def raw(self, data: bytes) -> "BinaryWriter":
        end = self._pos + len(data)
        if end > len(self._buffer):
            raise SizeMismatchError(
                f"Write of {len(data)} bytes at offset {self._pos} overflows "
                f"declared size {len(self._buffer)}"
            )
        self._buffer[self._pos : end] = data
        self._pos = end
        return self

    def int8(self, value: int) -> "BinaryWriter":
        return self._put(_INT8, value)

    def int16(self, value: int) -> "BinaryWriter":
        return self._put(_INT16, value)

    def int32(self, value: int) -> "BinaryWriter":
        return self._put(_INT32, value)

    def float32(self, value: float) -> "BinaryWriter":
        return self._put(_FLOAT32, value)

    def pstring(self, value: str) -> "BinaryWriter":
        encoded = encode_pstring(value)
        self._put(_UINT8, len(encoded))
        return self.raw(encoded)

    def result(self) -> bytes:
        if self._pos != len(self._buffer):
            raise SizeMismatchError(
                f"BinaryWriter wrote {self._pos} bytes, expected {len(self._buffer)}"
            )
        return bytes(self._buffer)
