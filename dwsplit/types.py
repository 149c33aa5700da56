"""Core types and protocols for dwsplit."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Hashable, Optional, Protocol, Tuple, Union


@dataclass(frozen=True)
class MasterAnnotation:
    """Sends a variable or constraint to the master problem."""

    @property
    def is_master(self) -> bool:
        return True

    def __str__(self) -> str:
        return "master()"


@dataclass(frozen=True)
class SubproblemAnnotation:
    """Sends a variable or constraint to the subproblem identified by ``id``."""

    id: Hashable

    @property
    def is_master(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"subproblem({self.id!r})"


Annotation = Union[MasterAnnotation, SubproblemAnnotation]

MASTER = MasterAnnotation()


def dantzig_wolfe_master() -> MasterAnnotation:
    """Annotation for master-resident variables and constraints."""
    return MASTER


def dantzig_wolfe_subproblem(sp_id: Hashable) -> SubproblemAnnotation:
    """Annotation for variables and constraints of subproblem ``sp_id``."""
    return SubproblemAnnotation(sp_id)


@dataclass(frozen=True)
class ScalarKey:
    """Key of an unindexed variable or constraint declaration."""

    name: str

    @property
    def index(self) -> Tuple:
        return ()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IndexedKey:
    """Key of one element of an indexed variable or constraint declaration."""

    name: str
    index: Tuple

    def __str__(self) -> str:
        return f"{self.name}[{', '.join(repr(i) for i in self.index)}]"


Key = Union[ScalarKey, IndexedKey]


def make_key(name: str, index: Tuple) -> Key:
    """Build the key for ``name`` at ``index``; the empty tuple means scalar."""
    index = tuple(index)
    if not index:
        return ScalarKey(name)
    return IndexedKey(name, index)


class ClassifyFn(Protocol):
    """Protocol for annotation functions.

    Called as ``classify(name, *index)``; scalar declarations get no index
    arguments. Must return an :data:`Annotation`. Returning ``None`` or raising
    :class:`dwsplit.exceptions.MissingAnnotation` marks the key as unannotated.
    """

    def __call__(self, name: str, *index: Any) -> Optional[Annotation]: ...


@dataclass(frozen=True)
class VariableAttributes:
    """Attributes copied verbatim from an original variable onto its image."""

    has_lower_bound: bool
    lower_bound: float
    has_upper_bound: bool
    upper_bound: float
    is_fixed: bool
    fix_value: Optional[float]
    has_start_value: bool
    start_value: Optional[float]
    is_binary: bool
    is_integer: bool
    domain: Any = field(default=None, compare=False)

    @classmethod
    def from_var(cls, var) -> "VariableAttributes":
        has_lb = var.has_lb()
        has_ub = var.has_ub()
        start = var.value
        return cls(
            has_lower_bound=has_lb,
            lower_bound=var.lb if has_lb else -math.inf,
            has_upper_bound=has_ub,
            upper_bound=var.ub if has_ub else math.inf,
            is_fixed=var.fixed,
            fix_value=start if var.fixed else None,
            has_start_value=start is not None,
            start_value=start,
            is_binary=var.is_binary(),
            # Pyomo reports binaries as integer too; keep the two flags disjoint.
            is_integer=var.is_integer() and not var.is_binary(),
            domain=var.domain,
        )
