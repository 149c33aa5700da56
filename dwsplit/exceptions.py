"""Error kinds raised while building a decomposition."""

from __future__ import annotations


class DecompositionError(Exception):
    """Base class for every error raised by dwsplit."""


class MissingAnnotation(DecompositionError, LookupError):
    """A declared variable or constraint key has no annotation rule."""

    def __init__(self, key, message=None):
        self.key = key
        super().__init__(message or f"No annotation for {key}; every variable and constraint must be annotated.")


class ModelConsistencyError(DecompositionError, RuntimeError):
    """An expression references a variable with no image in the variable mapping."""


class EmptyDecompositionError(DecompositionError, ValueError):
    """Nothing to decompose: no rules, no variables or no constraints."""


class NonlinearExpressionError(DecompositionError, ValueError):
    """A constraint body or the objective is not affine."""


class MalformedPattern(DecompositionError, ValueError):
    """A declarative rule's left-hand side is not ``name`` or ``name[i, ...]``."""


class MalformedAssignment(DecompositionError, ValueError):
    """A declarative rule's destination is not ``master()`` or ``subproblem(expr)``."""


class ArityError(DecompositionError, TypeError):
    """A destination call was given the wrong number of arguments."""
