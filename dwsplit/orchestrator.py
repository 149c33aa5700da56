"""High-level decomposition orchestrator."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Iterable, Mapping, Union

from pyomo.environ import ConcreteModel

from dwsplit.config import DecompositionConfig
from dwsplit.decomposition.reformulation import Reformulation, dantzig_wolfe_decomposition
from dwsplit.patterns import compile_rules
from dwsplit.types import ClassifyFn


class DantzigWolfeDecomposition:
    """Driver that wires a configuration and an annotation function to the reformulation."""

    def __init__(
        self,
        config: DecompositionConfig | None = None,
        classify: ClassifyFn | None = None,
    ) -> None:
        self.config = config or DecompositionConfig()
        self.classify = classify

    def run(self, model: ConcreteModel, classify: ClassifyFn | None = None, **overrides: Any) -> Reformulation:
        """Decompose ``model``; keyword overrides replace config fields for this run only."""
        classify = classify or self.classify
        if classify is None:
            raise ValueError("An annotation function is required, pass classify= here or to the constructor")
        cfg = asdict(self.config)
        unknown = set(overrides) - set(cfg)
        if unknown:
            raise TypeError(f"Unknown configuration options: {', '.join(sorted(unknown))}")
        cfg.update(overrides)
        return dantzig_wolfe_decomposition(model, classify, config=DecompositionConfig(**cfg))


def run_dantzig_wolfe(
    model: ConcreteModel,
    classify: ClassifyFn,
    config: DecompositionConfig | None = None,
    **kwargs: Any,
) -> Reformulation:
    """Convenience wrapper for one-shot decomposition runs."""
    orchestrator = DantzigWolfeDecomposition(config=config, classify=classify)
    return orchestrator.run(model, **kwargs)


def dantzig_wolfe(
    model: ConcreteModel,
    rules: Union[str, Iterable[str]],
    namespace: Mapping[str, Any] | None = None,
    config: DecompositionConfig | None = None,
    **kwargs: Any,
) -> Reformulation:
    """Compile declarative rules and decompose ``model`` with them.

    Example::

        reformulation = dantzig_wolfe(model, '''
            x[m, _] => subproblem(m)
            assignment[_] => master()
            capacity[m] => subproblem(m)
        ''')
    """
    classify = compile_rules(rules, namespace=namespace)
    return run_dantzig_wolfe(model, classify, config=config, **kwargs)
