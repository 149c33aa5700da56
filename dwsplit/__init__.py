"""dwsplit: Dantzig-Wolfe reformulation of annotated Pyomo models."""

from dwsplit.config import DecompositionConfig
from dwsplit.decomposition.callbacks import MappingBasedCallbacks
from dwsplit.decomposition.reformulation import (
    Reformulation,
    SubproblemModel,
    cost_mapping,
    coupling_mapping,
    dantzig_wolfe_decomposition,
    master,
    subproblems,
)
from dwsplit.exceptions import (
    ArityError,
    DecompositionError,
    EmptyDecompositionError,
    MalformedAssignment,
    MalformedPattern,
    MissingAnnotation,
    ModelConsistencyError,
    NonlinearExpressionError,
)
from dwsplit.orchestrator import DantzigWolfeDecomposition, dantzig_wolfe, run_dantzig_wolfe
from dwsplit.patterns import compile_rules
from dwsplit.types import dantzig_wolfe_master, dantzig_wolfe_subproblem

__all__ = [
    "ArityError",
    "DantzigWolfeDecomposition",
    "DecompositionConfig",
    "DecompositionError",
    "EmptyDecompositionError",
    "MalformedAssignment",
    "MalformedPattern",
    "MappingBasedCallbacks",
    "MissingAnnotation",
    "ModelConsistencyError",
    "NonlinearExpressionError",
    "Reformulation",
    "SubproblemModel",
    "compile_rules",
    "cost_mapping",
    "coupling_mapping",
    "dantzig_wolfe",
    "dantzig_wolfe_decomposition",
    "dantzig_wolfe_master",
    "dantzig_wolfe_subproblem",
    "master",
    "run_dantzig_wolfe",
    "subproblems",
]
