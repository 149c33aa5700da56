"""Grouping of annotated keys into master and subproblem partitions."""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Set, Tuple

from dwsplit.decomposition.annotation import AnnotationTable
from dwsplit.types import Annotation

logger = logging.getLogger(__name__)

IndexSet = Set[Tuple]
PartitionByName = Dict[str, IndexSet]


def _sort_key(value: Any):
    # Numbers, then strings, then tuples, then anything else by type name and repr.
    if isinstance(value, numbers.Real):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    if isinstance(value, tuple):
        return (2, tuple(_sort_key(v) for v in value))
    return (3, type(value).__name__, repr(value))


def sorted_indices(indices: Iterable[Tuple]) -> List[Tuple]:
    """Sort index tuples lexicographically, tolerating mixed element types."""
    return sorted(indices, key=lambda index: tuple(_sort_key(v) for v in index))


def sorted_ids(ids: Iterable[Hashable]) -> List[Hashable]:
    """Sort subproblem ids deterministically."""
    return sorted(ids, key=_sort_key)


def _group(entries: Dict, keep) -> PartitionByName:
    grouped: PartitionByName = {}
    for key, annotation in entries.items():
        if keep(annotation):
            grouped.setdefault(key.name, set()).add(key.index)
    return grouped


def _group_by_subproblem(entries: Dict) -> Dict[Hashable, PartitionByName]:
    grouped: Dict[Hashable, PartitionByName] = {}
    for key, annotation in entries.items():
        if annotation.is_master:
            continue
        grouped.setdefault(annotation.id, {}).setdefault(key.name, set()).add(key.index)
    return grouped


def master_variables(table: AnnotationTable) -> PartitionByName:
    """Variables annotated for the master, as ``name -> {index, ...}``."""
    return _group(table.variables, lambda annotation: annotation.is_master)


def partition_subproblem_variables(table: AnnotationTable) -> Dict[Hashable, PartitionByName]:
    """Variables annotated for subproblems, as ``id -> name -> {index, ...}``."""
    return _group_by_subproblem(table.variables)


def master_constraints(table: AnnotationTable) -> PartitionByName:
    """Constraints annotated for the master, as ``name -> {index, ...}``."""
    return _group(table.constraints, lambda annotation: annotation.is_master)


def partition_subproblem_constraints(table: AnnotationTable) -> Dict[Hashable, PartitionByName]:
    """Constraints annotated for subproblems, as ``id -> name -> {index, ...}``."""
    return _group_by_subproblem(table.constraints)


@dataclass
class Partition:
    """Master and per-subproblem slices of the declared keys.

    Scalar declarations contribute the empty index tuple ``()``.
    """

    master_variables: PartitionByName = field(default_factory=dict)
    subproblem_variables: Dict[Hashable, PartitionByName] = field(default_factory=dict)
    master_constraints: PartitionByName = field(default_factory=dict)
    subproblem_constraints: Dict[Hashable, PartitionByName] = field(default_factory=dict)

    def subproblem_ids(self) -> List[Hashable]:
        """Ids that own at least one variable or constraint, in sorted order."""
        return sorted_ids(set(self.subproblem_variables) | set(self.subproblem_constraints))

    def variables_of(self, annotation: Annotation) -> PartitionByName:
        if annotation.is_master:
            return self.master_variables
        return self.subproblem_variables.get(annotation.id, {})

    def constraints_of(self, annotation: Annotation) -> PartitionByName:
        if annotation.is_master:
            return self.master_constraints
        return self.subproblem_constraints.get(annotation.id, {})


def partition_annotations(table: AnnotationTable) -> Partition:
    """Split a resolved annotation table into a :class:`Partition`."""
    partition = Partition(
        master_variables=master_variables(table),
        subproblem_variables=partition_subproblem_variables(table),
        master_constraints=master_constraints(table),
        subproblem_constraints=partition_subproblem_constraints(table),
    )
    logger.debug(
        "Partitioned %d variables and %d constraints into master + %d subproblems",
        len(table.variables),
        len(table.constraints),
        len(partition.subproblem_ids()),
    )
    return partition
