"""Merge orchestration: stage execution, caching and final assembly."""

from eupath_orgdb.pipeline.orchestrator import (
    OUTPUT_TABLES,
    BatchResult,
    MergeOrchestrator,
    OrganismAnnotations,
    semi_join_primary,
)
from eupath_orgdb.pipeline.report import JoinMismatch, RunReport

__all__ = [
    "OUTPUT_TABLES",
    "BatchResult",
    "MergeOrchestrator",
    "OrganismAnnotations",
    "semi_join_primary",
    "JoinMismatch",
    "RunReport",
]
