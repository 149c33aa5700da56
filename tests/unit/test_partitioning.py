from dwsplit.decomposition.annotation import AnnotationTable
from dwsplit.decomposition.partitioning import (
    master_constraints,
    master_variables,
    partition_annotations,
    partition_subproblem_constraints,
    partition_subproblem_variables,
    sorted_ids,
    sorted_indices,
)
from dwsplit.types import (
    IndexedKey,
    ScalarKey,
    dantzig_wolfe_master,
    dantzig_wolfe_subproblem,
)


def _table():
    master = dantzig_wolfe_master()
    return AnnotationTable(
        variables={
            IndexedKey("x", (1, 1)): dantzig_wolfe_subproblem(1),
            IndexedKey("x", (1, 2)): dantzig_wolfe_subproblem(1),
            IndexedKey("x", (2, 1)): dantzig_wolfe_subproblem(2),
            IndexedKey("penalty", (1,)): master,
            ScalarKey("z"): dantzig_wolfe_subproblem(3),
        },
        constraints={
            IndexedKey("assignment", (1,)): master,
            IndexedKey("capacity", (1,)): dantzig_wolfe_subproblem(1),
            IndexedKey("capacity", (2,)): dantzig_wolfe_subproblem(2),
            ScalarKey("side"): dantzig_wolfe_subproblem(4),
        },
    )


def test_slices_group_indices_by_name():
    table = _table()
    assert master_variables(table) == {"penalty": {(1,)}}
    assert partition_subproblem_variables(table) == {
        1: {"x": {(1, 1), (1, 2)}},
        2: {"x": {(2, 1)}},
        3: {"z": {()}},
    }
    assert master_constraints(table) == {"assignment": {(1,)}}
    assert partition_subproblem_constraints(table) == {
        1: {"capacity": {(1,)}},
        2: {"capacity": {(2,)}},
        4: {"side": {()}},
    }


def test_every_key_lands_in_exactly_one_slice():
    table = _table()
    partition = partition_annotations(table)
    seen = []
    for name, indices in partition.master_variables.items():
        seen.extend((name, index) for index in indices)
    for by_name in partition.subproblem_variables.values():
        for name, indices in by_name.items():
            seen.extend((name, index) for index in indices)
    assert sorted(seen, key=repr) == sorted(((k.name, k.index) for k in table.variables), key=repr)
    assert len(seen) == len(set(seen))


def test_subproblem_ids_are_the_union_of_variable_and_constraint_ids():
    partition = partition_annotations(_table())
    assert partition.subproblem_ids() == [1, 2, 3, 4]
    assert partition.variables_of(dantzig_wolfe_subproblem(4)) == {}
    assert partition.constraints_of(dantzig_wolfe_master()) == {"assignment": {(1,)}}


def test_sorted_indices_handles_mixed_types():
    assert sorted_indices({(2,), ("a",), (1,)}) == [(1,), (2,), ("a",)]
    assert sorted_indices({(2, "b"), (1, "z"), (1, "a")}) == [(1, "a"), (1, "z"), (2, "b")]
    assert sorted_indices({()}) == [()]


def test_sorted_ids_is_deterministic_for_heterogeneous_ids():
    ids = ["b", 2, (1, 1), 1, "a"]
    assert sorted_ids(ids) == [1, 2, "a", "b", (1, 1)]
    assert sorted_ids(reversed(ids)) == sorted_ids(ids)
