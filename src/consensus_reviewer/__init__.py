"""Consensus Reviewer - multi-model code review with cross-model agreement analysis."""

__version__ = "0.1.0"
