"""Materialization of variables, constraints and objectives in target models."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from pyomo.environ import Constraint, Objective, Var

from dwsplit.decomposition.annotation import get_scalar_object, pyomo_index
from dwsplit.decomposition.expressions import (
    AffineExpression,
    RelationalSet,
    map_expression,
    restrict_expression,
)
from dwsplit.decomposition.partitioning import sorted_indices
from dwsplit.types import Annotation, VariableAttributes

logger = logging.getLogger(__name__)


def original_var_attributes(var) -> VariableAttributes:
    """Snapshot of the attributes copied from ``var`` onto its image."""
    return VariableAttributes.from_var(var)


def _apply_attributes(image, attributes: VariableAttributes) -> None:
    if attributes.domain is not None:
        image.domain = attributes.domain
    image.setlb(attributes.lower_bound if attributes.has_lower_bound else None)
    image.setub(attributes.upper_bound if attributes.has_upper_bound else None)
    if attributes.has_start_value:
        image.set_value(attributes.start_value, skip_validation=True)


def register_variables(
    target,
    annotation: Annotation,
    original_model,
    variables_by_name: Dict[str, Set[Tuple]],
    builder,
) -> List[Tuple[object, float]]:
    """Create one image per assigned original variable on ``target``.

    Fixing is deferred: the returned ``(image, value)`` pairs are fixed by
    :func:`fix_images` once every expression has been rewritten.

    Args:
        target: The master or subproblem ``ConcreteModel``.
        annotation: Annotation that ``target`` stands for.
        original_model: Model the variables are read from.
        variables_by_name: ``name -> {index, ...}`` slice of the partition.
        builder: Variable mapping builder that records ``original -> image``.

    Returns:
        Images that must be fixed and the values to fix them at.
    """
    pending = []
    for name, indices in variables_by_name.items():
        ordered = sorted_indices(indices)
        scalar = ordered == [()]
        component = Var() if scalar else Var([pyomo_index(index) for index in ordered])
        target.add_component(name, component)
        for index in ordered:
            original = get_scalar_object(original_model, name, index)
            image = component if scalar else component[pyomo_index(index)]
            attributes = original_var_attributes(original)
            _apply_attributes(image, attributes)
            if attributes.is_fixed:
                pending.append((image, attributes.fix_value))
            builder.add(original, image, annotation)
    logger.debug("Registered %d variable components on %s", len(variables_by_name), annotation)
    return pending


def fix_images(pending: List[Tuple[object, float]]) -> None:
    for image, fix_value in pending:
        image.fix(fix_value)


def register_constraints(
    target,
    annotation: Annotation,
    original_model,
    constraints_by_name: Dict[str, Set[Tuple]],
    variable_mapping,
    builder,
) -> List[Tuple[object, AffineExpression]]:
    """Rewrite the assigned original constraints onto ``target``.

    Terms whose image belongs to another model are dropped; the body
    constant and the relational set are kept as they are.

    Returns:
        ``(image constraint, full mapped expression)`` pairs, used later to
        fill the coupling mappings.
    """
    registered = []
    for name, indices in constraints_by_name.items():
        ordered = sorted_indices(indices)
        scalar = ordered == [()]
        rules = {}
        for index in ordered:
            original = get_scalar_object(original_model, name, index)
            mapped = map_expression(original.body, variable_mapping, context=f"constraint {original.name}")
            body = restrict_expression(mapped, annotation, variable_mapping, context=original.name)
            rules[index] = (original, mapped, RelationalSet.from_constraint(original).build(body))
        if scalar:
            component = Constraint(expr=rules[()][2])
        else:
            component = Constraint(
                [pyomo_index(index) for index in ordered],
                rule=lambda m, *idx: rules[tuple(idx)][2],
            )
        target.add_component(name, component)
        for index in ordered:
            original, mapped, _ = rules[index]
            image = component if scalar else component[pyomo_index(index)]
            builder.add(original, image, annotation)
            registered.append((image, mapped))
    return registered


def original_objective(model) -> Optional[Tuple[str, object, object]]:
    """Return ``(name, sense, expr)`` of the active objective, or ``None``.

    Raises:
        ValueError: More than one objective is active.
    """
    # Reference components can yield the same data a second time.
    objectives = list(
        {id(obj): obj for obj in model.component_data_objects(Objective, active=True, descend_into=False)}.values()
    )
    if not objectives:
        return None
    if len(objectives) > 1:
        raise ValueError(
            f"Expected at most one active objective, found {len(objectives)}: "
            + ", ".join(obj.name for obj in objectives)
        )
    objective = objectives[0]
    return objective.parent_component().local_name, objective.sense, objective.expr


def register_objective(
    target,
    annotation: Annotation,
    name: str,
    sense,
    mapped: AffineExpression,
    variable_mapping,
    is_master: bool,
):
    """Add the terms of ``mapped`` owned by ``target`` as its objective.

    The constant stays on the master only; subproblem objectives start at 0.
    """
    expr = restrict_expression(
        mapped,
        annotation,
        variable_mapping,
        keep_constant=is_master,
        context="objective",
    )
    objective = Objective(expr=expr, sense=sense)
    target.add_component(name, objective)
    return objective
