import pytest

from dwsplit.exceptions import (
    ArityError,
    EmptyDecompositionError,
    MalformedAssignment,
    MalformedPattern,
    MissingAnnotation,
)
from dwsplit.patterns import MasterAssignment, compile_rules, parse_pattern
from dwsplit.types import IndexedKey, ScalarKey, dantzig_wolfe_master, dantzig_wolfe_subproblem

GAP_RULES = """
    # machine-wise split
    x[m, _] => subproblem(m)
    assignment[_] => master()
    capacity[m] => subproblem(m)

    z => subproblem(1)
"""


def test_compiled_rules_dispatch_on_name_and_arity():
    classify = compile_rules(GAP_RULES)
    assert len(classify) == 4
    assert classify("x", 2, 7) == dantzig_wolfe_subproblem(2)
    assert classify("assignment", 3) == dantzig_wolfe_master()
    assert classify("capacity", "m1") == dantzig_wolfe_subproblem("m1")
    assert classify("z") == dantzig_wolfe_subproblem(1)


def test_missing_rule_raises_for_the_key():
    classify = compile_rules(GAP_RULES)
    with pytest.raises(MissingAnnotation) as excinfo:
        classify("x", 1)
    assert excinfo.value.key == IndexedKey("x", (1,))
    with pytest.raises(MissingAnnotation) as excinfo:
        classify("penalty")
    assert excinfo.value.key == ScalarKey("penalty")


def test_subproblem_expressions_see_captures_and_namespace():
    classify = compile_rules(
        ["x[i, j] => subproblem((zone[i], j % 2))", "y[k] => subproblem(k + offset)"],
        namespace={"zone": {1: "north", 2: "south"}, "offset": 10},
    )
    assert classify("x", 2, 5) == dantzig_wolfe_subproblem(("south", 1))
    assert classify("y", 1) == dantzig_wolfe_subproblem(11)


def test_rule_structure_is_exposed():
    classify = compile_rules("assignment[_] => master()")
    (rule,) = classify.rules
    assert rule.name == "assignment"
    assert rule.indices == ("_",)
    assert isinstance(rule.assignment, MasterAssignment)
    assert parse_pattern("x[_, _]") == ("x", ("_", "_"))


@pytest.mark.parametrize(
    "rule",
    [
        "x[m] subproblem(m)",
        "x[m, 1] => subproblem(m)",
        "x[m, m] => subproblem(m)",
        "x.y[m] => subproblem(m)",
        "x[m => subproblem(m)",
    ],
)
def test_malformed_patterns(rule):
    with pytest.raises(MalformedPattern):
        compile_rules(rule)


def test_duplicate_name_and_arity_is_malformed():
    with pytest.raises(MalformedPattern):
        compile_rules(["x[m, _] => subproblem(m)", "x[_, j] => master()"])
    compile_rules(["x[m, _] => subproblem(m)", "x[m] => master()"])


@pytest.mark.parametrize(
    "rule",
    [
        "x[m] => pricing(m)",
        "x[m] => subproblem",
        "x[m] => subproblem(m",
        "x[m] => subproblem(j)",
        "x[m] => subproblem(id=m)",
    ],
)
def test_malformed_assignments(rule):
    with pytest.raises(MalformedAssignment):
        compile_rules(rule)


@pytest.mark.parametrize(
    "rule",
    [
        "x[m] => subproblem(__import__('os').getpid())",
        "x[m] => subproblem(len(m))",
        "x[m] => subproblem(m.__class__)",
        "x[m] => subproblem((lambda: m)())",
        "x[m] => subproblem(sites[m:])",
    ],
)
def test_id_expressions_are_limited_to_data_access_and_arithmetic(rule):
    with pytest.raises(MalformedAssignment):
        compile_rules(rule, namespace={"sites": [1, 2]})


def test_id_expressions_support_attributes_and_unary_operators():
    class Site:
        region = "east"

    classify = compile_rules(
        ["x[i] => subproblem(sites[i].region)", "y[k] => subproblem(-k ** 2)"],
        namespace={"sites": {1: Site()}},
    )
    assert classify("x", 1) == dantzig_wolfe_subproblem("east")
    assert classify("y", 3) == dantzig_wolfe_subproblem(-9)


@pytest.mark.parametrize("rule", ["x[m] => master(m)", "x[m] => subproblem()", "x[m, j] => subproblem(m, j)"])
def test_arity_errors(rule):
    with pytest.raises(ArityError):
        compile_rules(rule)


def test_front_end_errors_are_value_or_type_errors():
    with pytest.raises(ValueError):
        compile_rules("x[1] => master()")
    with pytest.raises(TypeError):
        compile_rules("x => master(1)")


def test_no_rules_is_an_empty_decomposition():
    with pytest.raises(EmptyDecompositionError):
        compile_rules("")
    with pytest.raises(EmptyDecompositionError):
        compile_rules(["   ", "# only a comment"])
