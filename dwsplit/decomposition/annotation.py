"""Enumeration of declared keys and annotation resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from pyomo.environ import Constraint, Var

from dwsplit.exceptions import MissingAnnotation
from dwsplit.types import Annotation, Key, MasterAnnotation, SubproblemAnnotation, make_key

logger = logging.getLogger(__name__)


def normalize_index(index) -> Tuple:
    """Turn a Pyomo index (``None``, scalar or tuple) into an index tuple."""
    if index is None:
        return ()
    if isinstance(index, tuple):
        return index
    return (index,)


def pyomo_index(index: Tuple):
    """Inverse of :func:`normalize_index` for non-empty tuples."""
    if not index:
        return None
    if len(index) == 1:
        return index[0]
    return index


def get_scalar_object(model, name, index):
    """Return the ``VarData``/``ConstraintData`` of component ``name`` at ``index``."""
    component = model.component(name)
    if component is None:
        raise KeyError(f"Model has no component named {name!r}")
    if not component.is_indexed():
        return component
    return component[pyomo_index(index)]


def declared_variables(model) -> Iterator[Tuple[Key, object]]:
    """Yield ``(key, VarData)`` for every top-level variable declaration.

    ``Reference`` components alias data declared elsewhere and are skipped.
    """
    for component in model.component_objects(Var, descend_into=False):
        if component.is_reference():
            continue
        name = component.local_name
        for index, var in component.items():
            yield make_key(name, normalize_index(index)), var


def declared_constraints(model) -> Iterator[Tuple[Key, object]]:
    """Yield ``(key, ConstraintData)`` for every active top-level constraint."""
    for component in model.component_objects(Constraint, active=True, descend_into=False):
        if component.is_reference():
            continue
        name = component.local_name
        for index, constraint in component.items():
            if not constraint.active:
                continue
            yield make_key(name, normalize_index(index)), constraint


@dataclass(frozen=True)
class AnnotationTable:
    """Resolved annotations, variables and constraints kept apart.

    Both dictionaries follow the original declaration order.
    """

    variables: Dict[Key, Annotation] = field(default_factory=dict)
    constraints: Dict[Key, Annotation] = field(default_factory=dict)


def resolve_key(classify, key: Key) -> Annotation:
    """Call ``classify`` for one key and validate what it returns."""
    try:
        annotation = classify(key.name, *key.index)
    except MissingAnnotation as exc:
        if exc.key == key:
            raise
        raise MissingAnnotation(key) from exc
    if annotation is None:
        raise MissingAnnotation(key)
    if not isinstance(annotation, (MasterAnnotation, SubproblemAnnotation)):
        raise TypeError(
            f"Annotation for {key} must be master() or subproblem(id), got {annotation!r}"
        )
    return annotation


def resolve_annotations(model, classify) -> AnnotationTable:
    """Resolve every declared variable and constraint key of ``model``.

    Raises:
        MissingAnnotation: A key has no rule. Nothing has been built yet.
    """
    variables = {key: resolve_key(classify, key) for key, _ in declared_variables(model)}
    constraints = {key: resolve_key(classify, key) for key, _ in declared_constraints(model)}
    logger.debug("Resolved %d variable and %d constraint annotations", len(variables), len(constraints))
    return AnnotationTable(variables=variables, constraints=constraints)
