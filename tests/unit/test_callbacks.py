import pytest
from pyomo.common.collections import ComponentMap
from pyomo.environ import ConcreteModel, Constraint, Var

from dwsplit.decomposition.callbacks import MappingBasedCallbacks
from dwsplit.decomposition.mappings import CouplingConstraintMapping, OriginalCostMapping


def _callbacks():
    master = ConcreteModel()
    master.p = Var()
    master.cover = Constraint([1, 2], rule=lambda m, j: m.p >= 0)
    sub = ConcreteModel()
    sub.x = Var([1, 2, 3])
    coupling = CouplingConstraintMapping(
        ComponentMap(
            [
                (sub.x[1], [(master.cover[1], 1.0)]),
                (sub.x[2], [(master.cover[1], 1.0), (master.cover[2], 2.0)]),
            ]
        )
    )
    costs = OriginalCostMapping(ComponentMap([(sub.x[1], 3.0), (sub.x[2], 4.0), (sub.x[3], 1.0)]))
    variables = [sub.x[1], sub.x[2], sub.x[3]]
    return master, sub, MappingBasedCallbacks(coupling, costs, variables)


def test_column_cost_uses_original_costs():
    _, sub, callbacks = _callbacks()
    solution = ComponentMap([(sub.x[1], 1.0), (sub.x[3], 2.0)])
    assert callbacks.compute_column_cost(solution) == pytest.approx(5.0)


def test_column_cost_defaults_to_current_values():
    _, sub, callbacks = _callbacks()
    sub.x[2].set_value(1.0)
    assert callbacks.compute_column_cost() == pytest.approx(4.0)


def test_column_coefficients_are_sparse():
    master, sub, callbacks = _callbacks()
    coefficients = callbacks.compute_column_coefficients(ComponentMap([(sub.x[1], 1.0)]))
    assert len(coefficients) == 1
    assert coefficients[master.cover[1]] == pytest.approx(1.0)
    assert master.cover[2] not in coefficients

    coefficients = callbacks.compute_column_coefficients(ComponentMap([(sub.x[1], 1.0), (sub.x[2], 1.0)]))
    assert coefficients[master.cover[1]] == pytest.approx(2.0)
    assert coefficients[master.cover[2]] == pytest.approx(2.0)


def test_reduced_costs_subtract_priced_coefficients():
    master, sub, callbacks = _callbacks()
    duals = ComponentMap([(master.cover[1], 0.5), (master.cover[2], 1.5)])
    reduced = callbacks.compute_reduced_costs(duals)
    assert reduced[sub.x[1]] == pytest.approx(2.5)
    assert reduced[sub.x[2]] == pytest.approx(4.0 - 0.5 - 3.0)
    assert reduced[sub.x[3]] == pytest.approx(1.0)


def test_reduced_costs_treat_missing_duals_as_zero():
    master, sub, callbacks = _callbacks()
    reduced = callbacks.compute_reduced_costs(ComponentMap([(master.cover[2], 1.0)]))
    assert reduced[sub.x[1]] == pytest.approx(3.0)
    assert reduced[sub.x[2]] == pytest.approx(2.0)
