"""Configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class DecompositionConfig:
    """Configuration container for :class:`dwsplit.orchestrator.DantzigWolfeDecomposition`.

    The fields mirror keyword arguments accepted by
    :func:`dwsplit.decomposition.reformulation.dantzig_wolfe_decomposition`.
    """

    convexity_lower_name: str = "convexity_lb"
    convexity_upper_name: str = "convexity_ub"
    convexity_lower_rhs: float = 0.0
    convexity_upper_rhs: float = 1.0
    objective_name: Optional[str] = None
    verbosity: int = 0
