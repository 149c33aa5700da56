"""Dantzig-Wolfe decomposition primitives for annotated Pyomo models."""

from dwsplit.decomposition.annotation import AnnotationTable, resolve_annotations
from dwsplit.decomposition.callbacks import MappingBasedCallbacks
from dwsplit.decomposition.mappings import (
    ConstraintMapping,
    CouplingConstraintMapping,
    OriginalCostMapping,
    VariableMapping,
)
from dwsplit.decomposition.partitioning import (
    Partition,
    master_constraints,
    master_variables,
    partition_annotations,
    partition_subproblem_constraints,
    partition_subproblem_variables,
)
from dwsplit.decomposition.reformulation import (
    Reformulation,
    SubproblemModel,
    add_convexity_constraints,
    cost_mapping,
    coupling_mapping,
    dantzig_wolfe_decomposition,
    master,
    subproblems,
)

__all__ = [
    "AnnotationTable",
    "ConstraintMapping",
    "CouplingConstraintMapping",
    "MappingBasedCallbacks",
    "OriginalCostMapping",
    "Partition",
    "Reformulation",
    "SubproblemModel",
    "VariableMapping",
    "add_convexity_constraints",
    "cost_mapping",
    "coupling_mapping",
    "dantzig_wolfe_decomposition",
    "master",
    "master_constraints",
    "master_variables",
    "partition_annotations",
    "partition_subproblem_constraints",
    "partition_subproblem_variables",
    "resolve_annotations",
    "subproblems",
]
