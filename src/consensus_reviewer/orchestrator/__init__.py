"""Orchestration, aggregation and report synthesis."""

from consensus_reviewer.orchestrator.aggregator import (
    AggregatedFindings,
    FindingAggregator,
    clustering_key,
)
from consensus_reviewer.orchestrator.orchestrator import ReviewOrchestrator
from consensus_reviewer.orchestrator.synthesizer import (
    ReportSynthesizer,
    read_results_json,
    write_report_json,
    write_results_json,
)

__all__ = [
    "AggregatedFindings",
    "FindingAggregator",
    "ReportSynthesizer",
    "ReviewOrchestrator",
    "clustering_key",
    "read_results_json",
    "write_report_json",
    "write_results_json",
]
