from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import TypeAdapter

from .errors import InvalidSpecError
from .patterns import GeneratorSpec

_LOGGER = logging.getLogger("synthforge.catalog")

_SPEC_LIST_ADAPTER: TypeAdapter[list[GeneratorSpec]] = TypeAdapter(list[GeneratorSpec])


def _freq(default: float = 440.0, clamp: list[float] | None = None) -> dict[str, Any]:
    return {
        "name": "freq",
        "default": default,
        "role": "core",
        "mod_name": "freq_mod",
        "clamp": clamp,
    }


def _amp(default: float = 0.5) -> dict[str, Any]:
    return {"name": "amp", "default": default, "role": "amp", "mod_name": "amp_mod"}


_RAW_GENERATORS: list[dict[str, Any]] = [
    # Basic waveforms
    {"name": "saw_osc", "ugen": "Saw", "params": [_freq(), _amp()]},
    {
        "name": "pulse_osc",
        "ugen": "Pulse",
        "params": [
            _freq(),
            _amp(),
            {"name": "width", "default": 0.5, "mod_name": "width_mod", "clamp": [0, 1]},
        ],
    },
    {"name": "tri_osc", "ugen": "LFTri", "params": [_freq(), _amp()]},
    # Harmonic
    {
        "name": "blip_osc",
        "ugen": "Blip",
        "params": [
            _freq(),
            _amp(),
            {"name": "numharm", "default": 20, "mod_name": "numharm_mod", "clamp": [1, 200]},
        ],
    },
    {
        "name": "formant_osc",
        "ugen": "Formant",
        "params": [
            _freq(),
            _amp(),
            {"name": "formfreq", "default": 1760, "mod_name": "formfreq_mod"},
            {"name": "bwfreq", "default": 880, "mod_name": "bwfreq_mod"},
        ],
    },
    # Noise
    {
        "name": "dust",
        "ugen": "Dust",
        "params": [
            {"name": "density", "default": 1, "mod_name": "density_mod", "clamp": [0]},
            _amp(),
        ],
    },
    {
        "name": "crackle",
        "ugen": "Crackle",
        "params": [
            {"name": "chaos", "default": 1.5, "mod_name": "chaos_mod", "clamp": [1, 2]},
            _amp(),
        ],
    },
    {"name": "white_noise", "ugen": "WhiteNoise", "params": [_amp()]},
    {"name": "pink_noise", "ugen": "PinkNoise", "params": [_amp()]},
    # LF random, mostly used as modulation sources
    {"name": "lfnoise0", "ugen": "LFNoise0", "params": [_freq(4, [0.01]), _amp()]},
    {"name": "lfnoise1", "ugen": "LFNoise1", "params": [_freq(4, [0.01]), _amp()]},
    {"name": "lfnoise2", "ugen": "LFNoise2", "params": [_freq(4, [0.01]), _amp()]},
]

GENERATORS: Mapping[str, GeneratorSpec] = MappingProxyType(
    {spec.name: spec for spec in _SPEC_LIST_ADAPTER.validate_python(_RAW_GENERATORS)}
)


def get_generator(name: str) -> GeneratorSpec:
    try:
        return GENERATORS[name]
    except KeyError as exc:
        raise InvalidSpecError(f"Unknown generator: {name!r}") from exc


def select_generators(
    names: Iterable[str],
    available: Mapping[str, GeneratorSpec] = GENERATORS,
) -> list[GeneratorSpec]:
    """Pick specs by name, in the order given; no names selects everything."""

    wanted = list(names)
    if not wanted:
        return list(available.values())
    missing = [name for name in wanted if name not in available]
    if missing:
        raise InvalidSpecError(f"Unknown generator(s): {', '.join(missing)}")
    return [available[name] for name in wanted]


def load_generator_specs(path: str | Path) -> dict[str, GeneratorSpec]:
    """Read a JSON list of generator specs, keyed by synthdef name."""

    source = Path(path)
    specs = _SPEC_LIST_ADAPTER.validate_json(source.read_bytes())
    loaded: dict[str, GeneratorSpec] = {}
    for spec in specs:
        if spec.name in loaded:
            raise InvalidSpecError(f"{source}: generator {spec.name!r} is defined twice")
        loaded[spec.name] = spec
    _LOGGER.info("Loaded %d generator specs from %s", len(loaded), source)
    return loaded
