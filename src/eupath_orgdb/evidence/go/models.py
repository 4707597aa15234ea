"""Data models for GO annotation tables."""

import polars as pl
from pydantic import BaseModel, ConfigDict

# Table name for DuckDB storage and output files
GO_TABLE_NAME = "go"

GO_COLUMNS = ["GID", "GO", "EVIDENCE"]
GO_SCHEMA = {"GID": pl.Utf8, "GO": pl.Utf8, "EVIDENCE": pl.Utf8}

# EuPathDB annotation table holding GO terms
EUPATHDB_GO_TABLE = "GOTerms"


class AnnotationRow(BaseModel):
    """A gene-to-term annotation with its evidence code and origin.

    Attributes:
        gid: Canonical gene ID
        term: GO term (or domain/pathway) identifier
        evidence: Evidence code (e.g. IEA, IDA); None if the source gives none
        source: Where the row came from ("report", "remote", ...)
    """

    model_config = ConfigDict(frozen=True)

    gid: str
    term: str
    evidence: str | None = None
    source: str = "report"

    def as_go_row(self) -> tuple[str, str, str | None]:
        return (self.gid, self.term, self.evidence)
