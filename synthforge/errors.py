from __future__ import annotations


class SynthForgeError(Exception):
    """Base error for the synthforge library."""


class FormatError(SynthForgeError):
    """Raised when a value cannot be represented in the SCgf byte layout."""


class StringTooLongError(FormatError):
    """Raised when a name does not fit a 1-byte length-prefixed ASCII string."""


class SizeMismatchError(FormatError):
    """Raised when the bytes written diverge from the precomputed file size."""


class GraphError(SynthForgeError):
    """Raised when a synth graph is wired or declared inconsistently."""


class DuplicateParameterError(GraphError):
    """Raised when a parameter name is declared twice in one synthdef."""


class DanglingReferenceError(GraphError):
    """Raised when an input points at a missing, forward or self node or constant."""


class ParameterOrderError(GraphError):
    """Raised when a declaration would break the control-before-audio parameter order."""


class InvalidSpecError(SynthForgeError):
    """Raised when a generator description cannot be resolved or assembled."""
