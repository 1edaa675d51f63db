"""Pipelines orchestrating the ledger and the pure core."""

from .pos_pipeline import PosPipeline, PosResult, create_pos_pipeline
from .summary_pipeline import SummaryPipeline, create_summary_pipeline

__all__ = [
    "PosPipeline",
    "PosResult",
    "SummaryPipeline",
    "create_pos_pipeline",
    "create_summary_pipeline",
]
