from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import GENERATORS, load_generator_specs, select_generators
from .errors import StringTooLongError
from .logging_utils import DEBUG_ENV
from .patterns import GeneratorSpec
from .writer import encode_pstring

_LOGGER = logging.getLogger("synthforge.config")

OUT_DIR_ENV = "SYNTHFORGE_OUT_DIR"
_DEFAULT_OUT_DIR = "synthdefs"


def default_out_dir() -> Path:
    configured = os.environ.get(OUT_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path(_DEFAULT_OUT_DIR)


def debug_enabled() -> bool:
    return bool(os.environ.get(DEBUG_ENV))


class BuildConfig(BaseModel):
    """What to build and where to put it."""

    out_dir: Path = Field(default_factory=default_out_dir)
    generators: tuple[str, ...] = ()
    spec_file: Path | None = None
    bundle_name: str | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("bundle_name")
    @classmethod
    def _bundle_name_is_pstring(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not value or "/" in value or "\\" in value:
            raise ValueError(f"bundle name must be a plain file stem, got {value!r}")
        try:
            encode_pstring(value)
        except StringTooLongError as exc:
            raise ValueError(str(exc)) from exc
        return value

    def resolve_specs(self) -> list[GeneratorSpec]:
        available: Mapping[str, GeneratorSpec] = GENERATORS
        if self.spec_file is not None:
            available = load_generator_specs(self.spec_file)
        specs = select_generators(self.generators, available)
        _LOGGER.debug("Selected generators: %s", ", ".join(spec.name for spec in specs))
        return specs
