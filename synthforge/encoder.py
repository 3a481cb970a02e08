"""SCgf (version 2) file encoding.

The byte size of a file is computed by running the field visitor against a
``SizeCounter``; the same visitor then fills a ``BinaryWriter`` of exactly that
size. Any divergence between the two passes aborts the encode.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import FormatError
from .graph import SynthDef, UGen
from .writer import BinaryWriter, FieldSink, SizeCounter

_LOGGER = logging.getLogger("synthforge.encoder")

MAGIC = b"SCgf"
FORMAT_VERSION = 2
SYNTHDEF_SUFFIX = ".scsyndef"
_MAX_DEFS_PER_FILE = 2**15 - 1


def _visit_ugen(sink: FieldSink, ugen: UGen) -> None:
    sink.pstring(ugen.class_id)
    sink.int8(ugen.rate)
    sink.int32(len(ugen.inputs))
    sink.int32(len(ugen.outputs))
    sink.int16(ugen.special)
    for ref in ugen.inputs:
        sink.int32(ref.node_index)
        sink.int32(ref.output_slot)
    for rate in ugen.outputs:
        sink.int8(rate)


def _visit_synthdef(sink: FieldSink, synthdef: SynthDef) -> None:
    sink.pstring(synthdef.name)

    sink.int32(len(synthdef.constants))
    for value in synthdef.constants:
        sink.float32(value)

    parameters = tuple(synthdef.parameters)
    sink.int32(len(parameters))
    for parameter in parameters:
        sink.float32(parameter.default)
    sink.int32(len(parameters))
    for parameter in parameters:
        sink.pstring(parameter.name)
        sink.int32(parameter.index)

    nodes = synthdef.nodes
    sink.int32(len(nodes))
    for ugen in nodes:
        _visit_ugen(sink, ugen)

    # Variants are not supported.
    sink.int16(0)


def _visit_file(sink: FieldSink, synthdefs: tuple[SynthDef, ...]) -> None:
    sink.raw(MAGIC)
    sink.int32(FORMAT_VERSION)
    sink.int16(len(synthdefs))
    for synthdef in synthdefs:
        _visit_synthdef(sink, synthdef)


def _collect(synthdef: SynthDef, synthdefs: tuple[SynthDef, ...]) -> tuple[SynthDef, ...]:
    collected = (synthdef,) + synthdefs
    if len(collected) > _MAX_DEFS_PER_FILE:
        raise FormatError(f"Too many synthdefs for one file: {len(collected)}")
    return collected


def encoded_size(synthdef: SynthDef, *synthdefs: SynthDef) -> int:
    """Return the exact byte length ``encode_synthdefs`` will produce."""

    counter = SizeCounter()
    _visit_file(counter, _collect(synthdef, synthdefs))
    return counter.size


def encode_synthdefs(synthdef: SynthDef, *synthdefs: SynthDef) -> bytes:
    """Serialize one or more synthdefs into a single SCgf payload."""

    collected = _collect(synthdef, synthdefs)
    counter = SizeCounter()
    _visit_file(counter, collected)
    writer = BinaryWriter(counter.size)
    _visit_file(writer, collected)
    payload = writer.result()
    _LOGGER.debug(
        "Encoded %s (%d bytes)",
        ", ".join(sd.name for sd in collected),
        len(payload),
    )
    return payload


def write_synthdef_file(path: str | Path, synthdef: SynthDef, *synthdefs: SynthDef) -> Path:
    """Encode and write a ``.scsyndef`` file; nothing is left on disk on failure."""

    payload = encode_synthdefs(synthdef, *synthdefs)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        with target.open("wb") as handle:
            handle.write(payload)
    except BaseException:
        target.unlink(missing_ok=True)
        raise
    _LOGGER.info("Wrote %s (%d bytes)", target, len(payload))
    return target
