"""Case-study model builders used by demos and integration tests."""

from dwsplit.case_studies.gap import build_gap_model, build_mixed_gap_model, gap_classify

__all__ = ["build_gap_model", "build_mixed_gap_model", "gap_classify"]
