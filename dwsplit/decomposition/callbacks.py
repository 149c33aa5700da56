"""Pricing-side callbacks backed by the coupling and cost mappings."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import numpy as np
from pyomo.common.collections import ComponentMap

from dwsplit.decomposition.mappings import CouplingConstraintMapping, OriginalCostMapping


def _solution_value(solution, var) -> float:
    if solution is None:
        return 0.0 if var.value is None else float(var.value)
    if var in solution:
        val = solution[var]
        return 0.0 if val is None else float(val)
    return 0.0


class MappingBasedCallbacks:
    """Column cost, column coefficients and reduced costs for one subproblem.

    Solutions map subproblem image variables to values; ``None`` reads the
    current variable values. Duals map master constraints to values, a
    Pyomo ``Suffix`` works as well. Missing entries count as zero.
    Convexity constraints are never part of the results.
    """

    def __init__(
        self,
        coupling_mapping: CouplingConstraintMapping,
        cost_mapping: OriginalCostMapping,
        variables: Optional[Sequence] = None,
    ) -> None:
        self.coupling_mapping = coupling_mapping
        self.cost_mapping = cost_mapping
        if variables is None:
            seen = ComponentMap()
            for var in list(coupling_mapping) + list(cost_mapping):
                seen[var] = None
            variables = list(seen.keys())
        self.variables = list(variables)

    @classmethod
    def from_subproblem(cls, subproblem) -> "MappingBasedCallbacks":
        return cls(subproblem.coupling_mapping, subproblem.cost_mapping, subproblem.variables())

    def compute_column_cost(self, solution: Optional[Mapping] = None) -> float:
        """Original objective value of a subproblem solution."""
        return float(
            sum(cost * _solution_value(solution, var) for var, cost in self.cost_mapping.items())
        )

    def compute_column_coefficients(self, solution: Optional[Mapping] = None) -> ComponentMap:
        """Contribution of a subproblem solution to each coupling constraint.

        Returns:
            ``ComponentMap`` from master constraint to coefficient, non-zero
            entries only.
        """
        coefficients = ComponentMap()
        for var, pairs in self.coupling_mapping.items():
            x = _solution_value(solution, var)
            if x == 0.0:
                continue
            for constraint, coef in pairs:
                coefficients[constraint] = coefficients.get(constraint, 0.0) + coef * x
        return ComponentMap((c, v) for c, v in coefficients.items() if v != 0.0)

    def compute_reduced_costs(self, duals: Mapping) -> ComponentMap:
        """Reduced cost ``c_j - sum_i a_ij * pi_i`` of every subproblem variable."""
        matrix, rows, columns = self.coupling_mapping.coupling_matrix(self.variables)
        pi = np.array([_dual_value(duals, constraint) for constraint in rows], dtype=float)
        costs = np.array([self.cost_mapping.get_cost(var) for var in columns], dtype=float)
        reduced = costs - matrix.T @ pi if rows else costs
        return ComponentMap((var, float(rc)) for var, rc in zip(columns, reduced))


def _dual_value(duals, constraint) -> float:
    val = duals.get(constraint, 0.0)
    return 0.0 if val is None else float(val)
