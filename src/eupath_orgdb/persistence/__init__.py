"""Persistence layer for stage checkpoints and provenance tracking."""

from eupath_orgdb.persistence.duckdb_store import PipelineStore
from eupath_orgdb.persistence.fingerprint import (
    STAGE_VERSIONS,
    file_fingerprint,
    stage_fingerprint,
)
from eupath_orgdb.persistence.provenance import ProvenanceTracker

__all__ = [
    "PipelineStore",
    "ProvenanceTracker",
    "STAGE_VERSIONS",
    "file_fingerprint",
    "stage_fingerprint",
]
