import pytest
from pyomo.environ import ConcreteModel, Constraint, Var

from dwsplit.decomposition.annotation import (
    declared_constraints,
    declared_variables,
    get_scalar_object,
    normalize_index,
    pyomo_index,
    resolve_annotations,
)
from dwsplit.exceptions import MissingAnnotation
from dwsplit.types import IndexedKey, ScalarKey, dantzig_wolfe_master, dantzig_wolfe_subproblem


def _small_model():
    m = ConcreteModel()
    m.z = Var()
    m.y = Var([1, 2])
    m.c = Constraint(expr=m.z + m.y[1] + m.y[2] <= 3)
    m.d = Constraint([1, 2], rule=lambda mdl, i: mdl.y[i] >= 0)
    return m


def test_index_normalization_round_trips_pyomo_indices():
    assert normalize_index(None) == ()
    assert normalize_index(3) == (3,)
    assert normalize_index((1, "a")) == (1, "a")
    assert pyomo_index(()) is None
    assert pyomo_index((3,)) == 3
    assert pyomo_index((1, "a")) == (1, "a")


def test_declared_keys_follow_declaration_order():
    m = _small_model()
    assert [key for key, _ in declared_variables(m)] == [
        ScalarKey("z"),
        IndexedKey("y", (1,)),
        IndexedKey("y", (2,)),
    ]
    assert [key for key, _ in declared_constraints(m)] == [
        ScalarKey("c"),
        IndexedKey("d", (1,)),
        IndexedKey("d", (2,)),
    ]


def test_get_scalar_object_handles_scalar_and_indexed_components():
    m = _small_model()
    assert get_scalar_object(m, "z", ()) is m.z
    assert get_scalar_object(m, "y", (2,)) is m.y[2]
    with pytest.raises(KeyError):
        get_scalar_object(m, "missing", ())


def test_inactive_constraints_are_not_enumerated():
    m = _small_model()
    m.d[2].deactivate()
    keys = [key for key, _ in declared_constraints(m)]
    assert IndexedKey("d", (2,)) not in keys
    m.c.deactivate()
    assert ScalarKey("c") not in [key for key, _ in declared_constraints(m)]


def test_scalar_keys_are_classified_without_index_arguments():
    m = _small_model()
    calls = []

    def classify(name, *index):
        calls.append((name, index))
        return dantzig_wolfe_subproblem(1) if name == "z" else dantzig_wolfe_master()

    table = resolve_annotations(m, classify)
    assert ("z", ()) in calls
    assert ("y", (1,)) in calls
    assert table.variables[ScalarKey("z")] == dantzig_wolfe_subproblem(1)
    assert table.constraints[IndexedKey("d", (1,))] == dantzig_wolfe_master()
    assert len(table.variables) == 3
    assert len(table.constraints) == 3


def test_missing_annotation_names_the_key():
    m = _small_model()

    def classify(name, *index):
        if name == "d":
            return None
        return dantzig_wolfe_master()

    with pytest.raises(MissingAnnotation) as excinfo:
        resolve_annotations(m, classify)
    assert excinfo.value.key == IndexedKey("d", (1,))
    assert isinstance(excinfo.value, LookupError)


def test_classifier_raising_missing_annotation_is_reported_for_the_key():
    m = _small_model()

    def classify(name, *index):
        if name == "y":
            raise MissingAnnotation(name)
        return dantzig_wolfe_master()

    with pytest.raises(MissingAnnotation) as excinfo:
        resolve_annotations(m, classify)
    assert excinfo.value.key == IndexedKey("y", (1,))


def test_non_annotation_result_is_a_type_error():
    m = _small_model()
    with pytest.raises(TypeError):
        resolve_annotations(m, lambda name, *index: "master")
