import math

from pyomo.environ import Binary, ConcreteModel, Integers, NonNegativeReals, Var

from dwsplit.types import (
    MASTER,
    IndexedKey,
    ScalarKey,
    VariableAttributes,
    dantzig_wolfe_master,
    dantzig_wolfe_subproblem,
    make_key,
)


def test_annotations_compare_by_value():
    assert dantzig_wolfe_master() is MASTER
    assert dantzig_wolfe_subproblem((1, "a")) == dantzig_wolfe_subproblem((1, "a"))
    assert dantzig_wolfe_subproblem(1) != dantzig_wolfe_master()
    assert dantzig_wolfe_master().is_master
    assert not dantzig_wolfe_subproblem(1).is_master
    assert str(dantzig_wolfe_subproblem("a")) == "subproblem('a')"


def test_make_key_distinguishes_scalar_and_indexed_declarations():
    assert make_key("z", ()) == ScalarKey("z")
    assert make_key("x", [1, 2]) == IndexedKey("x", (1, 2))
    assert ScalarKey("z").index == ()
    assert str(IndexedKey("x", (1, "a"))) == "x[1, 'a']"


def test_variable_attributes_snapshot():
    m = ConcreteModel()
    m.free = Var()
    m.bounded = Var(domain=Integers, bounds=(1, 5), initialize=3)
    m.binary = Var(domain=Binary)
    m.fixed = Var(domain=NonNegativeReals)
    m.fixed.fix(2.5)

    free = VariableAttributes.from_var(m.free)
    assert not free.has_lower_bound and free.lower_bound == -math.inf
    assert not free.has_upper_bound and free.upper_bound == math.inf
    assert not free.has_start_value

    bounded = VariableAttributes.from_var(m.bounded)
    assert (bounded.lower_bound, bounded.upper_bound, bounded.start_value) == (1, 5, 3)
    assert bounded.is_integer and not bounded.is_binary

    binary = VariableAttributes.from_var(m.binary)
    assert binary.is_binary and not binary.is_integer

    fixed = VariableAttributes.from_var(m.fixed)
    assert fixed.is_fixed and fixed.fix_value == 2.5
