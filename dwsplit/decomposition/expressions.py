"""Affine expression extraction and rewriting against image variables."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from pyomo.core.expr.numeric_expr import LinearExpression, MonomialTermExpression
from pyomo.core.expr.numvalue import native_numeric_types, value
from pyomo.core.expr.visitor import identify_variables, replace_expressions
from pyomo.repn.standard_repn import generate_standard_repn

from dwsplit.exceptions import ModelConsistencyError, NonlinearExpressionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AffineExpression:
    """Ordered ``(variable, coefficient)`` terms plus a constant.

    Variables appear at most once in ``terms``.
    """

    terms: Tuple[Tuple[object, float], ...] = ()
    constant: float = 0.0

    def __len__(self) -> int:
        return len(self.terms)

    def variables(self):
        return [var for var, _ in self.terms]


def affine_expression(expr, context: str = "expression") -> AffineExpression:
    """Collect the affine terms of a Pyomo expression.

    Fixed variables are folded into the constant, so callers that need them
    as terms rewrite against unfixed images first.

    Raises:
        NonlinearExpressionError: ``expr`` has quadratic or nonlinear parts.
    """
    if type(expr) in native_numeric_types:
        return AffineExpression((), float(expr))
    repn = generate_standard_repn(expr, compute_values=True, quadratic=False)
    if not repn.is_linear():
        raise NonlinearExpressionError(f"The {context} is not affine: {expr}")
    coefficients = {}
    order = []
    for var, coef in zip(repn.linear_vars, repn.linear_coefs):
        key = id(var)
        if key not in coefficients:
            order.append(var)
            coefficients[key] = 0.0
        coefficients[key] += float(value(coef))
    constant = float(value(repn.constant)) if repn.constant is not None else 0.0
    return AffineExpression(tuple((var, coefficients[id(var)]) for var in order), constant)


def map_expression(expr, variable_mapping, context: str = "expression") -> AffineExpression:
    """Rewrite ``expr`` with every variable replaced by its image.

    Args:
        expr: Expression over original-model variables.
        variable_mapping: Mapping from original ``VarData`` to image ``VarData``.
        context: Label used in error messages.

    Returns:
        The affine form of the rewritten expression, over image variables.

    Raises:
        ModelConsistencyError: A variable of ``expr`` has no image.
    """
    if type(expr) in native_numeric_types:
        return AffineExpression((), float(expr))
    substitution_map = {}
    for var in identify_variables(expr, include_fixed=True):
        if var not in variable_mapping:
            raise ModelConsistencyError(
                f"Variable {var.name} in {context} has no image in the variable mapping"
            )
        substitution_map[id(var)] = variable_mapping[var]
    mapped = replace_expressions(
        expr,
        substitution_map=substitution_map,
        descend_into_named_expressions=True,
        remove_named_expressions=True,
    )
    return affine_expression(mapped, context=context)


def restrict_expression(
    mapped: AffineExpression,
    annotation,
    variable_mapping,
    keep_constant: bool = True,
    context: str = "expression",
) -> LinearExpression:
    """Keep the terms of ``mapped`` whose image lives in the ``annotation`` model."""
    args = [mapped.constant if keep_constant else 0.0]
    dropped = 0
    for image, coef in mapped.terms:
        if variable_mapping.image_owner(image) == annotation:
            args.append(MonomialTermExpression((coef, image)))
        else:
            dropped += 1
    if dropped:
        logger.debug("Dropped %d cross-model terms from %s for %s", dropped, context, annotation)
    return LinearExpression(args)


def _bound(bound) -> Optional[float]:
    if bound is None:
        return None
    bound = float(value(bound))
    if math.isinf(bound):
        return None
    return bound


@dataclass(frozen=True)
class RelationalSet:
    """``lower <= body <= upper`` or ``body == rhs``; ``None`` marks a missing side."""

    lower: Optional[float] = None
    upper: Optional[float] = None
    equality: bool = False

    @classmethod
    def from_constraint(cls, constraint) -> "RelationalSet":
        if constraint.equality:
            rhs = _bound(constraint.upper if constraint.upper is not None else constraint.lower)
            return cls(lower=rhs, upper=rhs, equality=True)
        return cls(lower=_bound(constraint.lower), upper=_bound(constraint.upper))

    def build(self, body):
        """Constraint rule value for ``body`` under this set."""
        if self.equality:
            return (body, self.lower)
        return (self.lower, body, self.upper)
