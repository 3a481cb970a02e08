"""Declarative generator specs and the oscillator graph template.

Every generated synthdef follows the same shape::

    Control(params..., pan, out_bus)   AudioControl(mods...)
      -> (base + mod) -> clamp          per parameter
      -> Generator(core inputs...) * amp
      -> Pan2(sig, pan, 1) -> [L, R]
      -> Select(out_bus <= 0, [L, clip(L)]) / same for R
      -> Out(out_bus, L, R)

Parameter order is part of the runtime contract: declared parameters first,
then ``pan`` and ``out_bus``, then every modulation input. Running synths are
addressed by absolute parameter index, so this order must not change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .graph import BinaryOperator, Rate, Reference, SynthDef

_LOGGER = logging.getLogger("synthforge.patterns")

PAN_PARAM = "pan"
OUT_BUS_PARAM = "out_bus"

ParameterRole = Literal["core", "amp"]


class RangeClamp(BaseModel):
    """Clip the resolved value into ``[low, high]``."""

    kind: Literal["range"] = "range"
    low: float
    high: float

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "RangeClamp":
        if self.low > self.high:
            raise ValueError(f"clamp low {self.low} exceeds high {self.high}")
        return self


class FloorClamp(BaseModel):
    """Take ``max(value, low)``."""

    kind: Literal["floor"] = "floor"
    low: float

    model_config = ConfigDict(extra="forbid", frozen=True)


ClampPolicy = Annotated[RangeClamp | FloorClamp, Field(discriminator="kind")]

_AMP_FLOOR = FloorClamp(low=0.0)


class ParamSpec(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    default: float
    role: ParameterRole = "core"
    mod_name: str | None = Field(default=None, min_length=1, max_length=255)
    clamp: ClampPolicy | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("clamp", mode="before")
    @classmethod
    def _expand_clamp_shorthand(cls, value: Any) -> Any:
        match value:
            case [low, high]:
                return {"kind": "range", "low": low, "high": high}
            case [low]:
                return {"kind": "floor", "low": low}
            case []:
                raise ValueError("clamp shorthand needs one or two bounds")
            case _:
                return value

    @property
    def modulated(self) -> bool:
        return self.mod_name is not None

    @property
    def effective_clamp(self) -> RangeClamp | FloorClamp | None:
        """Clamp applied to the resolved value.

        Amplitudes without an explicit clamp are floored at zero, but only
        when modulated; a raw control value is passed through untouched.
        """

        if self.clamp is not None:
            return self.clamp
        if self.role == "amp" and self.modulated:
            return _AMP_FLOOR
        return None


class GeneratorSpec(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    ugen: str = Field(min_length=1, max_length=255)
    params: tuple[ParamSpec, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _single_amplitude(self) -> "GeneratorSpec":
        amps = [p.name for p in self.params if p.role == "amp"]
        if len(amps) > 1:
            raise ValueError(f"at most one amp parameter allowed, got {amps}")
        return self

    @property
    def amp_param(self) -> ParamSpec | None:
        return next((p for p in self.params if p.role == "amp"), None)

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """Absolute parameter order of the generated synthdef."""

        base = tuple(p.name for p in self.params)
        mods = tuple(p.mod_name for p in self.params if p.mod_name is not None)
        return base + (PAN_PARAM, OUT_BUS_PARAM) + mods


@dataclass(frozen=True, slots=True)
class _Constants:
    zero: Reference
    one: Reference
    minus_one: Reference


def _apply_clamp(
    synthdef: SynthDef,
    ref: Reference,
    clamp: RangeClamp | FloorClamp,
    rate: Rate,
) -> Reference:
    match clamp:
        case RangeClamp(low=low, high=high):
            low_ref = synthdef.constant(low)
            high_ref = synthdef.constant(high)
            return synthdef.reference(synthdef.add_node("Clip", rate, (ref, low_ref, high_ref)))
        case FloorClamp(low=low):
            return synthdef.add_binary_op(BinaryOperator.MAX, rate, ref, synthdef.constant(low))


def resolve_parameter(synthdef: SynthDef, param: ParamSpec) -> Reference:
    """Return the signal a parameter contributes: base (+ mod), then clamped."""

    ref = synthdef.parameter_reference(param.name)
    rate = Rate.CONTROL
    if param.mod_name is not None:
        mod_ref = synthdef.parameter_reference(param.mod_name)
        rate = Rate.AUDIO
        ref = synthdef.add_binary_op(BinaryOperator.ADD, rate, ref, mod_ref)
    clamp = param.effective_clamp
    if clamp is not None:
        ref = _apply_clamp(synthdef, ref, clamp, rate)
    return ref


def assemble_output(synthdef: SynthDef, signal: Reference, constants: _Constants) -> int:
    """Pan, safety-clip and route ``signal``; returns the ``Out`` node index."""

    pan_ref = synthdef.parameter_reference(PAN_PARAM)
    out_bus_ref = synthdef.parameter_reference(OUT_BUS_PARAM)

    pan2 = synthdef.add_node("Pan2", Rate.AUDIO, (signal, pan_ref, constants.one), 2)
    left = synthdef.reference(pan2, 0)
    right = synthdef.reference(pan2, 1)

    clipped_left = synthdef.add_node(
        "Clip", Rate.AUDIO, (left, constants.minus_one, constants.one)
    )
    clipped_right = synthdef.add_node(
        "Clip", Rate.AUDIO, (right, constants.minus_one, constants.one)
    )

    # Bus 0 is the hardware output and always gets the clipped signal.
    to_hardware = synthdef.add_binary_op(
        BinaryOperator.LTE, Rate.CONTROL, out_bus_ref, constants.zero
    )
    select_left = synthdef.add_node(
        "Select", Rate.AUDIO, (to_hardware, left, synthdef.reference(clipped_left))
    )
    select_right = synthdef.add_node(
        "Select", Rate.AUDIO, (to_hardware, right, synthdef.reference(clipped_right))
    )
    return synthdef.add_node(
        "Out",
        Rate.AUDIO,
        (out_bus_ref, synthdef.reference(select_left), synthdef.reference(select_right)),
        0,
    )


def build_generator(spec: GeneratorSpec) -> SynthDef:
    """Assemble the complete graph document for one generator spec."""

    synthdef = SynthDef(spec.name)
    constants = _Constants(
        zero=synthdef.constant(0.0),
        one=synthdef.constant(1.0),
        minus_one=synthdef.constant(-1.0),
    )

    for param in spec.params:
        synthdef.declare_parameter(param.name, param.default, "control")
    synthdef.declare_parameter(PAN_PARAM, 0.0, "control")
    synthdef.declare_parameter(OUT_BUS_PARAM, 0.0, "control")
    for param in spec.params:
        if param.mod_name is not None:
            synthdef.declare_parameter(param.mod_name, 0.0, "audio")
    synthdef.add_controls()

    core_inputs: list[Reference] = []
    amp_ref: Reference | None = None
    for param in spec.params:
        resolved = resolve_parameter(synthdef, param)
        if param.role == "amp":
            amp_ref = resolved
        else:
            core_inputs.append(resolved)

    generator = synthdef.reference(synthdef.add_node(spec.ugen, Rate.AUDIO, core_inputs))
    signal = generator
    if amp_ref is not None:
        signal = synthdef.add_binary_op(BinaryOperator.MUL, Rate.AUDIO, generator, amp_ref)

    assemble_output(synthdef, signal, constants)
    _LOGGER.debug(
        "Built %s: %d constants, %d parameters, %d nodes",
        spec.name,
        len(synthdef.constants),
        len(synthdef.parameters),
        len(synthdef.nodes),
    )
    return synthdef
