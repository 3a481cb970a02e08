from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .encoder import SYNTHDEF_SUFFIX, write_synthdef_file
from .graph import SynthDef
from .patterns import GeneratorSpec, build_generator

_LOGGER = logging.getLogger("synthforge.build")


def build_synthdefs(specs: Iterable[GeneratorSpec]) -> list[SynthDef]:
    built: list[SynthDef] = []
    for spec in specs:
        try:
            built.append(build_generator(spec))
        except Exception as exc:
            _LOGGER.error("Failed to build %s: %s", spec.name, exc)
            raise
    return built


def build_all(
    specs: Iterable[GeneratorSpec],
    out_dir: str | Path,
    *,
    bundle_name: str | None = None,
) -> list[Path]:
    """Build every spec, then write one file per synthdef (or one bundle file).

    All graphs are built before any file is touched, so an invalid spec never
    leaves a partial set of outputs behind.
    """

    synthdefs = build_synthdefs(specs)
    if not synthdefs:
        _LOGGER.warning("No generators selected; nothing written")
        return []

    target_dir = Path(out_dir)
    if bundle_name is not None:
        path = write_synthdef_file(target_dir / f"{bundle_name}{SYNTHDEF_SUFFIX}", *synthdefs)
        return [path]

    written: list[Path] = []
    for synthdef in synthdefs:
        try:
            written.append(
                write_synthdef_file(target_dir / f"{synthdef.name}{SYNTHDEF_SUFFIX}", synthdef)
            )
        except Exception as exc:
            _LOGGER.error("Failed to write %s: %s", synthdef.name, exc)
            raise
    return written
