from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Callable

import pytest


@dataclass
class DecodedUGen:
    class_id: str
    rate: int
    special: int
    inputs: list[tuple[int, int]]
    outputs: list[int]


@dataclass
class DecodedSynthDef:
    name: str
    constants: list[float] = field(default_factory=list)
    defaults: list[float] = field(default_factory=list)
    param_names: list[tuple[str, int]] = field(default_factory=list)
    ugens: list[DecodedUGen] = field(default_factory=list)
    variants: int = 0


@dataclass
class DecodedFile:
    magic: bytes
    version: int
    synthdefs: list[DecodedSynthDef]


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _unpack(self, fmt: str) -> int | float:
        size = struct.calcsize(fmt)
        (value,) = struct.unpack_from(fmt, self._data, self._pos)
        self._pos += size
        return value

    def raw(self, size: int) -> bytes:
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def int8(self) -> int:
        return int(self._unpack(">b"))

    def int16(self) -> int:
        return int(self._unpack(">h"))

    def int32(self) -> int:
        return int(self._unpack(">i"))

    def float32(self) -> float:
        return float(self._unpack(">f"))

    def pstring(self) -> str:
        length = int(self._unpack(">B"))
        return self.raw(length).decode("ascii")

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos


def decode_scgf(data: bytes) -> DecodedFile:
    """Test-only SCgf v2 reader; rejects trailing bytes."""

    reader = _Reader(data)
    magic = reader.raw(4)
    version = reader.int32()
    synthdefs: list[DecodedSynthDef] = []
    for _ in range(reader.int16()):
        sd = DecodedSynthDef(name=reader.pstring())
        sd.constants = [reader.float32() for _ in range(reader.int32())]
        sd.defaults = [reader.float32() for _ in range(reader.int32())]
        sd.param_names = [(reader.pstring(), reader.int32()) for _ in range(reader.int32())]
        for _ in range(reader.int32()):
            class_id = reader.pstring()
            rate = reader.int8()
            num_inputs = reader.int32()
            num_outputs = reader.int32()
            special = reader.int16()
            inputs = [(reader.int32(), reader.int32()) for _ in range(num_inputs)]
            outputs = [reader.int8() for _ in range(num_outputs)]
            sd.ugens.append(DecodedUGen(class_id, rate, special, inputs, outputs))
        sd.variants = reader.int16()
        synthdefs.append(sd)
    assert reader.remaining == 0, f"{reader.remaining} trailing bytes"
    return DecodedFile(magic=magic, version=version, synthdefs=synthdefs)


@pytest.fixture()
def decode() -> Callable[[bytes], DecodedFile]:
    return decode_scgf
