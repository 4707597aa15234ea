"""KEGG pathway evidence layer."""

from eupath_orgdb.evidence.kegg.fetch import (
    KEGGFetchResult,
    PathwaySlot,
    fetch_kegg_pathways,
    merge_slots,
)
from eupath_orgdb.evidence.kegg.models import (
    KEGG_COLUMNS,
    KEGG_SCHEMA,
    KEGG_TABLE_NAME,
    MEMBERSHIP_SCHEMA,
    PATHWAY_SCHEMA,
    PathwayRecord,
)
from eupath_orgdb.evidence.kegg.transform import (
    GENE_PATHWAY_SCHEMA,
    build_kegg_table,
    normalize_kegg_membership,
)

__all__ = [
    "KEGGFetchResult",
    "PathwaySlot",
    "fetch_kegg_pathways",
    "merge_slots",
    "KEGG_COLUMNS",
    "KEGG_SCHEMA",
    "KEGG_TABLE_NAME",
    "MEMBERSHIP_SCHEMA",
    "PATHWAY_SCHEMA",
    "PathwayRecord",
    "GENE_PATHWAY_SCHEMA",
    "build_kegg_table",
    "normalize_kegg_membership",
]
