from __future__ import annotations

from .build import build_all, build_synthdefs
from .catalog import GENERATORS, get_generator, load_generator_specs
from .encoder import encode_synthdefs, encoded_size, write_synthdef_file
from .errors import (
    DanglingReferenceError,
    DuplicateParameterError,
    FormatError,
    GraphError,
    InvalidSpecError,
    ParameterOrderError,
    SizeMismatchError,
    StringTooLongError,
    SynthForgeError,
)
from .graph import BinaryOperator, ConstantPool, ParameterTable, Rate, Reference, SynthDef, UGen
from .logging_utils import configure_logging as _configure_logging
from .patterns import FloorClamp, GeneratorSpec, ParamSpec, RangeClamp, build_generator
from .writer import BinaryWriter

__all__ = [
    "GENERATORS",
    "BinaryOperator",
    "BinaryWriter",
    "ConstantPool",
    "DanglingReferenceError",
    "DuplicateParameterError",
    "FloorClamp",
    "FormatError",
    "GeneratorSpec",
    "GraphError",
    "InvalidSpecError",
    "ParamSpec",
    "ParameterOrderError",
    "ParameterTable",
    "RangeClamp",
    "Rate",
    "Reference",
    "SizeMismatchError",
    "StringTooLongError",
    "SynthDef",
    "SynthForgeError",
    "UGen",
    "build_all",
    "build_generator",
    "build_synthdefs",
    "encode_synthdefs",
    "encoded_size",
    "get_generator",
    "load_generator_specs",
    "write_synthdef_file",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
