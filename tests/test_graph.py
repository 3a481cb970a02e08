from __future__ import annotations

import math

import pytest

from synthforge.errors import (
    DanglingReferenceError,
    DuplicateParameterError,
    FormatError,
    GraphError,
    ParameterOrderError,
    StringTooLongError,
)
from synthforge.graph import (
    BinaryOperator,
    ConstantPool,
    ParameterTable,
    Rate,
    Reference,
    SynthDef,
)


def test_constant_pool_dedupes_within_eight_decimals() -> None:
    pool = ConstantPool()
    first = pool.intern(0.5)
    assert pool.intern(0.5) == first
    assert pool.intern(0.500000001) == first
    assert len(pool) == 1


def test_constant_pool_keeps_values_differing_at_eight_decimals() -> None:
    pool = ConstantPool()
    assert pool.intern(0.1) != pool.intern(0.10000002)
    assert len(pool) == 2


def test_constant_pool_merges_negative_zero() -> None:
    pool = ConstantPool()
    assert pool.intern(0.0) == pool.intern(-0.0)


def test_constant_pool_indices_follow_insertion_order() -> None:
    pool = ConstantPool()
    assert [pool.intern(v) for v in (0, 1, -1, 1, 20000)] == [0, 1, 2, 1, 3]
    assert pool.values == (0.0, 1.0, -1.0, 20000.0)


def test_constant_pool_stores_float32_values() -> None:
    pool = ConstantPool()
    pool.intern(0.1)
    assert pool.values[0] != 0.1
    assert pool.values[0] == pytest.approx(0.1)


def test_constant_pool_merges_every_nan() -> None:
    pool = ConstantPool()
    first = pool.intern(math.nan)
    assert pool.intern(float("nan")) == first
    assert len(pool) == 1
    assert math.isnan(pool.values[0])


def test_constant_pool_keeps_infinities_apart() -> None:
    pool = ConstantPool()
    assert pool.intern(math.inf) != pool.intern(-math.inf)
    assert pool.values == (math.inf, -math.inf)


def test_float32_overflow_is_rejected() -> None:
    synthdef = SynthDef("huge")
    with pytest.raises(FormatError):
        synthdef.declare_parameter("freq", 1e40)
    with pytest.raises(FormatError):
        synthdef.constant(1e40)
    assert "freq" not in synthdef.parameters
    assert len(synthdef.constants) == 0


def test_parameter_table_assigns_absolute_indices() -> None:
    table = ParameterTable()
    assert table.declare("freq", 440) == 0
    assert table.declare("gate", 1, "trigger") == 1
    assert table.declare("freq_mod", 0, "audio") == 2
    assert [p.name for p in table.block_rate] == ["freq", "gate"]
    assert [p.name for p in table.sample_rate] == ["freq_mod"]


def test_parameter_table_rejects_duplicate_names() -> None:
    table = ParameterTable()
    table.declare("freq", 440)
    with pytest.raises(DuplicateParameterError):
        table.declare("freq", 220)
    with pytest.raises(DuplicateParameterError):
        table.declare("freq", 0, "audio")


def test_parameter_table_rejects_block_rate_after_sample_rate() -> None:
    table = ParameterTable()
    table.declare("freq_mod", 0, "audio")
    with pytest.raises(ParameterOrderError):
        table.declare("freq", 440)


def test_parameter_table_rejects_long_names() -> None:
    with pytest.raises(StringTooLongError):
        ParameterTable().declare("x" * 256, 0)


def test_add_node_rejects_forward_and_self_references() -> None:
    synthdef = SynthDef("graph")
    synthdef.add_node("WhiteNoise", Rate.AUDIO)
    with pytest.raises(DanglingReferenceError):
        synthdef.add_node("Out", Rate.AUDIO, (Reference(1, 0),), 0)
    with pytest.raises(DanglingReferenceError):
        synthdef.add_node("Out", Rate.AUDIO, (Reference(5, 0),), 0)
    assert len(synthdef.nodes) == 1


def test_add_node_rejects_missing_output_and_constant() -> None:
    synthdef = SynthDef("graph")
    synthdef.add_node("WhiteNoise", Rate.AUDIO)
    with pytest.raises(DanglingReferenceError):
        synthdef.add_node("Neg", Rate.AUDIO, (Reference(0, 1),))
    with pytest.raises(DanglingReferenceError):
        synthdef.add_node("Neg", Rate.AUDIO, (Reference(-1, 0),))


def test_reference_helpers_validate_targets() -> None:
    synthdef = SynthDef("graph")
    zero = synthdef.constant(0)
    assert zero == Reference(-1, 0)
    assert zero.is_constant
    assert synthdef.constant_reference(0) == zero
    with pytest.raises(DanglingReferenceError):
        synthdef.constant_reference(1)
    with pytest.raises(DanglingReferenceError):
        synthdef.reference(0)


def test_add_node_rejects_special_outside_int16() -> None:
    synthdef = SynthDef("graph")
    with pytest.raises(GraphError):
        synthdef.add_node("Control", Rate.CONTROL, (), 1, special=70_000)


def test_add_binary_op_records_operator_as_special() -> None:
    synthdef = SynthDef("graph")
    noise = synthdef.reference(synthdef.add_node("WhiteNoise", Rate.AUDIO))
    product = synthdef.add_binary_op(BinaryOperator.MUL, Rate.AUDIO, noise, synthdef.constant(0.5))
    node = synthdef.nodes[product.node_index]
    assert node.class_id == "BinaryOpUGen"
    assert node.special == 2
    assert node.inputs == (noise, Reference(-1, 0))


def test_add_controls_groups_runs_of_same_rate() -> None:
    synthdef = SynthDef("graph")
    synthdef.declare_parameter("freq", 440)
    synthdef.declare_parameter("amp", 0.5)
    synthdef.declare_parameter("gate", 1, "trigger")
    synthdef.declare_parameter("freq_mod", 0, "audio")
    synthdef.declare_parameter("amp_mod", 0, "audio")

    emitted = synthdef.add_controls()

    nodes = [synthdef.nodes[i] for i in emitted]
    assert [(n.class_id, n.rate, len(n.outputs), n.special) for n in nodes] == [
        ("Control", Rate.CONTROL, 2, 0),
        ("TrigControl", Rate.CONTROL, 1, 2),
        ("AudioControl", Rate.AUDIO, 2, 3),
    ]
    assert synthdef.parameter_reference("amp") == Reference(0, 1)
    assert synthdef.parameter_reference("gate") == Reference(1, 0)
    assert synthdef.parameter_reference("amp_mod") == Reference(2, 1)


def test_declaring_after_controls_is_an_order_error() -> None:
    synthdef = SynthDef("graph")
    synthdef.declare_parameter("freq", 440)
    synthdef.add_controls()
    with pytest.raises(ParameterOrderError):
        synthdef.declare_parameter("late", 0)
    with pytest.raises(ParameterOrderError):
        synthdef.add_controls()


def test_parameter_reference_requires_controls() -> None:
    synthdef = SynthDef("graph")
    synthdef.declare_parameter("freq", 440)
    with pytest.raises(DanglingReferenceError):
        synthdef.parameter_reference("freq")
    with pytest.raises(GraphError):
        synthdef.parameter_reference("missing")
