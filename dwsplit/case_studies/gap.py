"""Generalized assignment problem (GAP) model builders."""

from pyomo.environ import (
    Binary,
    ConcreteModel,
    Constraint,
    NonNegativeIntegers,
    NonNegativeReals,
    Objective,
    Var,
    minimize,
)

from dwsplit.types import dantzig_wolfe_master, dantzig_wolfe_subproblem


def build_gap_model(
    machines,
    jobs,
    costs,
    capacities,
    weights=None,
    penalty_costs=None,
    objective_constant=0.0,
    sense=minimize,
):
    """Build a GAP instance: every job goes to at least one machine within capacity.

    Args:
        machines: Machine identifiers.
        jobs: Job identifiers.
        costs: ``{(machine, job): cost}``.
        capacities: ``{machine: capacity}``.
        weights: ``{(machine, job): weight}``; every weight is 1 when omitted.
        penalty_costs: ``{job: cost}``. When given, a non-negative
            ``penalty[job]`` variable relaxes each assignment constraint.
        objective_constant: Constant added to the objective.
        sense: Objective sense.

    Returns:
        A ``ConcreteModel`` with variables ``x`` (and ``penalty``),
        constraints ``assignment`` and ``capacity`` and objective ``objective``.
    """
    machines = list(machines)
    jobs = list(jobs)
    weights = weights or {(m, j): 1 for m in machines for j in jobs}

    model = ConcreteModel(name="gap")
    model.x = Var(machines, jobs, domain=Binary)
    if penalty_costs is not None:
        model.penalty = Var(jobs, domain=NonNegativeReals)

    def assignment_rule(mdl, j):
        covered = sum(mdl.x[m, j] for m in machines)
        if penalty_costs is not None:
            covered += mdl.penalty[j]
        return covered >= 1

    def capacity_rule(mdl, m):
        return sum(weights[m, j] * mdl.x[m, j] for j in jobs) <= capacities[m]

    model.assignment = Constraint(jobs, rule=assignment_rule)
    model.capacity = Constraint(machines, rule=capacity_rule)

    expr = sum(costs[m, j] * model.x[m, j] for m in machines for j in jobs)
    if penalty_costs is not None:
        expr += sum(penalty_costs[j] * model.penalty[j] for j in jobs)
    model.objective = Objective(expr=expr + objective_constant, sense=sense)
    return model


def build_mixed_gap_model(
    machines,
    jobs,
    costs,
    capacities,
    overtime_cost=2.0,
    overtime_limit=1.0,
    machine_cost=5.0,
):
    """GAP variant mixing binary, continuous and integer variables.

    Each machine may run ``overtime[m]`` extra (continuous) capacity, and the
    scalar integer ``shifts`` caps the total overtime through the master-side
    ``overtime_budget`` constraint.
    """
    machines = list(machines)
    jobs = list(jobs)
    model = ConcreteModel(name="mixed_gap")
    model.x = Var(machines, jobs, domain=Binary)
    model.overtime = Var(machines, domain=NonNegativeReals, bounds=(0, overtime_limit))
    model.shifts = Var(domain=NonNegativeIntegers, bounds=(0, len(machines)), initialize=0)

    model.assignment = Constraint(jobs, rule=lambda mdl, j: sum(mdl.x[m, j] for m in machines) >= 1)
    model.capacity = Constraint(
        machines,
        rule=lambda mdl, m: sum(mdl.x[m, j] for j in jobs) <= capacities[m] + mdl.overtime[m],
    )
    model.overtime_budget = Constraint(expr=sum(model.overtime[m] for m in machines) <= model.shifts)

    model.objective = Objective(
        expr=sum(costs[m, j] * model.x[m, j] for m in machines for j in jobs)
        + overtime_cost * sum(model.overtime[m] for m in machines)
        + machine_cost * model.shifts,
        sense=minimize,
    )
    return model


def gap_classify(name, *index):
    """Machine-wise annotation of the GAP builders' components.

    Returns ``None`` for unknown names, which the resolver reports as a
    missing annotation.
    """
    if name in ("x", "capacity", "overtime"):
        return dantzig_wolfe_subproblem(index[0])
    if name in ("assignment", "penalty", "shifts", "overtime_budget"):
        return dantzig_wolfe_master()
    return None
