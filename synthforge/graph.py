"""Unit-generator graph model: constants, parameters, nodes and references.

A ``SynthDef`` is built top to bottom by a single producer. Nodes are appended
in evaluation order and may only read constants or the outputs of nodes that
precede them, so the node list is always a topologically ordered DAG.
"""

from __future__ import annotations

import enum
import itertools
import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping

import numpy as np

from .errors import (
    DanglingReferenceError,
    DuplicateParameterError,
    FormatError,
    GraphError,
    ParameterOrderError,
)
from .writer import encode_pstring

_LOGGER = logging.getLogger("synthforge.graph")

CONSTANT_KEY_DECIMALS = 8
_INT16_MIN = -(2**15)
_INT16_MAX = 2**15 - 1


class Rate(enum.IntEnum):
    """Evaluation rate byte written for nodes and their outputs."""

    SCALAR = 0
    CONTROL = 1
    AUDIO = 2


class BinaryOperator(enum.IntEnum):
    """``BinaryOpUGen`` special index values understood by the engine."""

    ADD = 0
    SUB = 1
    MUL = 2
    LTE = 10
    MAX = 13


ParameterRate = Literal["control", "trigger", "audio"]

# Control and trigger parameters are block-rate; audio parameters are sample-rate.
_BLOCK_RATES: frozenset[ParameterRate] = frozenset({"control", "trigger"})
_CONTROL_CLASSES: Mapping[ParameterRate, str] = MappingProxyType(
    {
        "control": "Control",
        "trigger": "TrigControl",
        "audio": "AudioControl",
    }
)
_CONTROL_NODE_RATES: Mapping[ParameterRate, Rate] = MappingProxyType(
    {
        "control": Rate.CONTROL,
        "trigger": Rate.CONTROL,
        "audio": Rate.AUDIO,
    }
)


def to_float32(value: float) -> float:
    """Narrow to float32, refusing finite values that would overflow to infinity."""

    with np.errstate(over="ignore"):
        narrowed = np.float32(value)
    if math.isfinite(value) and not np.isfinite(narrowed):
        raise FormatError(f"Value {value!r} does not fit in a float32")
    return float(narrowed)


@dataclass(frozen=True, slots=True)
class Reference:
    """One node input: a constant pool slot (``node_index == -1``) or a node output."""

    node_index: int
    output_slot: int

    @property
    def is_constant(self) -> bool:
        return self.node_index == -1


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    default: float
    rate: ParameterRate
    index: int

    @property
    def is_block_rate(self) -> bool:
        return self.rate in _BLOCK_RATES


@dataclass(frozen=True, slots=True)
class UGen:
    class_id: str
    rate: Rate
    inputs: tuple[Reference, ...]
    outputs: tuple[Rate, ...]
    special: int = 0


class ConstantPool:
    """Deduplicated float32 literals, keyed by their value rounded to 8 decimals.

    Every NaN shares one key, since NaN never compares equal to itself.
    """

    def __init__(self) -> None:
        self._values: list[float] = []
        self._index_by_key: dict[float | str, int] = {}

    @staticmethod
    def key_for(value: float) -> float | str:
        value = float(value)
        if math.isnan(value):
            return "nan"
        return round(value, CONSTANT_KEY_DECIMALS)

    def intern(self, value: float) -> int:
        key = self.key_for(value)
        index = self._index_by_key.get(key)
        if index is None:
            narrowed = to_float32(value)
            index = len(self._values)
            self._index_by_key[key] = index
            self._values.append(narrowed)
        return index

    @property
    def values(self) -> tuple[float, ...]:
        return tuple(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)


class ParameterTable:
    """Named external inputs, all block-rate entries ahead of all sample-rate ones."""

    def __init__(self) -> None:
        self._parameters: list[Parameter] = []
        self._by_name: dict[str, Parameter] = {}
        self._sealed = False

    def declare(self, name: str, default: float, rate: ParameterRate = "control") -> int:
        encode_pstring(name)
        if rate not in _CONTROL_CLASSES:
            raise GraphError(f"Unknown parameter rate: {rate!r}")
        if self._sealed:
            raise ParameterOrderError(
                f"Cannot declare {name!r}: control nodes were already emitted"
            )
        if name in self._by_name:
            raise DuplicateParameterError(f"Parameter {name!r} is already declared")
        if rate in _BLOCK_RATES and self.sample_rate:
            raise ParameterOrderError(
                f"Block-rate parameter {name!r} declared after sample-rate "
                f"parameter {self.sample_rate[0].name!r}"
            )
        parameter = Parameter(name=name, default=to_float32(default), rate=rate, index=len(self))
        self._parameters.append(parameter)
        self._by_name[name] = parameter
        return parameter.index

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def block_rate(self) -> tuple[Parameter, ...]:
        return tuple(p for p in self._parameters if p.is_block_rate)

    @property
    def sample_rate(self) -> tuple[Parameter, ...]:
        return tuple(p for p in self._parameters if not p.is_block_rate)

    def get(self, name: str) -> Parameter:
        try:
            return self._by_name[name]
        except KeyError as exc:
            raise GraphError(f"Unknown parameter: {name!r}") from exc

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._parameters)


class SynthDef:
    """One named graph document: constant pool, parameter table and node list."""

    def __init__(self, name: str) -> None:
        encode_pstring(name)
        self.name = name
        self.constants = ConstantPool()
        self.parameters = ParameterTable()
        self._nodes: list[UGen] = []
        self._parameter_refs: dict[str, Reference] = {}

    def __repr__(self) -> str:
        return (
            f"SynthDef({self.name!r}, constants={len(self.constants)}, "
            f"parameters={len(self.parameters)}, nodes={len(self._nodes)})"
        )

    @property
    def nodes(self) -> tuple[UGen, ...]:
        return tuple(self._nodes)

    def declare_parameter(
        self, name: str, default: float, rate: ParameterRate = "control"
    ) -> int:
        return self.parameters.declare(name, default, rate)

    def constant(self, value: float) -> Reference:
        return Reference(-1, self.constants.intern(value))

    def constant_reference(self, pool_index: int) -> Reference:
        if not 0 <= pool_index < len(self.constants):
            raise DanglingReferenceError(
                f"Constant #{pool_index} does not exist (pool has {len(self.constants)})"
            )
        return Reference(-1, pool_index)

    def reference(self, node_index: int, output_slot: int = 0) -> Reference:
        if not 0 <= node_index < len(self._nodes):
            raise DanglingReferenceError(
                f"Node #{node_index} does not exist (graph has {len(self._nodes)})"
            )
        outputs = len(self._nodes[node_index].outputs)
        if not 0 <= output_slot < outputs:
            raise DanglingReferenceError(
                f"Node #{node_index} ({self._nodes[node_index].class_id}) has no "
                f"output {output_slot} (it has {outputs})"
            )
        return Reference(node_index, output_slot)

    def _check_input(self, ref: Reference, own_index: int) -> None:
        if ref.is_constant:
            self.constant_reference(ref.output_slot)
            return
        if ref.node_index >= own_index:
            raise DanglingReferenceError(
                f"Node #{own_index} cannot read node #{ref.node_index}: "
                "only earlier nodes may be referenced"
            )
        self.reference(ref.node_index, ref.output_slot)

    def add_node(
        self,
        class_id: str,
        rate: Rate,
        inputs: Sequence[Reference] = (),
        output_count: int = 1,
        special: int = 0,
    ) -> int:
        encode_pstring(class_id)
        if output_count < 0:
            raise GraphError(f"{class_id}: output_count must be non-negative")
        if not _INT16_MIN <= int(special) <= _INT16_MAX:
            raise GraphError(f"{class_id}: special index {special} does not fit int16")
        index = len(self._nodes)
        for ref in inputs:
            self._check_input(ref, index)
        node_rate = Rate(rate)
        self._nodes.append(
            UGen(
                class_id=class_id,
                rate=node_rate,
                inputs=tuple(inputs),
                outputs=(node_rate,) * output_count,
                special=int(special),
            )
        )
        return index

    def add_binary_op(
        self,
        operator: BinaryOperator,
        rate: Rate,
        left: Reference,
        right: Reference,
    ) -> Reference:
        return self.reference(self.add_node("BinaryOpUGen", rate, (left, right), 1, operator))

    def add_controls(self) -> tuple[int, ...]:
        """Emit the parameter-exposing nodes and seal the parameter table.

        Each run of consecutive parameters of one kind becomes a single
        multi-output ``Control``/``TrigControl``/``AudioControl`` node whose
        special index is the absolute index of its first parameter.
        """

        if self.parameters.sealed:
            raise ParameterOrderError(f"{self.name}: control nodes were already emitted")
        self.parameters.seal()
        emitted: list[int] = []
        for rate, run in itertools.groupby(self.parameters, key=lambda p: p.rate):
            group = list(run)
            node_index = self.add_node(
                _CONTROL_CLASSES[rate],
                _CONTROL_NODE_RATES[rate],
                (),
                len(group),
                special=group[0].index,
            )
            for slot, parameter in enumerate(group):
                self._parameter_refs[parameter.name] = Reference(node_index, slot)
            emitted.append(node_index)
        _LOGGER.debug(
            "%s: exposed %d parameters through %d control nodes",
            self.name,
            len(self.parameters),
            len(emitted),
        )
        return tuple(emitted)

    def parameter_reference(self, name: str) -> Reference:
        self.parameters.get(name)
        try:
            return self._parameter_refs[name]
        except KeyError as exc:
            raise DanglingReferenceError(
                f"Parameter {name!r} has no control node yet; call add_controls() first"
            ) from exc
