"""Data models for the KEGG pathway evidence layer."""

import polars as pl
from pydantic import BaseModel

KEGG_TABLE_NAME = "kegg"

# Raw pathway membership as listed by KEGG (foreign gene IDs)
MEMBERSHIP_SCHEMA = {
    "KEGG_ID": pl.Utf8,
    "KEGG_PATH": pl.Utf8,
}

PATHWAY_SCHEMA = {
    "KEGG_PATH": pl.Utf8,
    "KEGG_NAME": pl.Utf8,
    "KEGG_CLASS": pl.Utf8,
    "KEGG_DESCRIPTION": pl.Utf8,
}

KEGG_COLUMNS = ["GID", "KEGG_PATH", "KEGG_NAME", "KEGG_CLASS", "KEGG_DESCRIPTION"]

KEGG_SCHEMA = {column: pl.Utf8 for column in KEGG_COLUMNS}


class PathwayRecord(BaseModel):
    """Metadata of one KEGG pathway.

    Attributes:
        pathway: Pathway ID as listed by KEGG (e.g. 'path:lma00010')
        name: Pathway name (e.g. 'Glycolysis / Gluconeogenesis')
        pathway_class: KEGG BRITE class string
        description: Free-text description
    """

    pathway: str
    name: str = ""
    pathway_class: str = ""
    description: str = ""

    def as_row(self) -> tuple[str, str, str, str]:
        return (self.pathway, self.name, self.pathway_class, self.description)
