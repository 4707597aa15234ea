"""Normalize KEGG gene IDs and build the final KEGG pathway table."""

import polars as pl
import structlog

from eupath_orgdb.evidence.kegg.models import (
    KEGG_COLUMNS,
    KEGG_SCHEMA,
    MEMBERSHIP_SCHEMA,
    PATHWAY_SCHEMA,
)
from eupath_orgdb.gene_mapping.normalizer import IdentifierNormalizer, NormalizationReport

logger = structlog.get_logger()

GENE_PATHWAY_SCHEMA = {"GID": pl.Utf8, "KEGG_PATH": pl.Utf8}


def normalize_kegg_membership(
    membership: pl.DataFrame,
    normalizer: IdentifierNormalizer,
) -> tuple[pl.DataFrame, NormalizationReport]:
    """Rewrite KEGG gene IDs in pathway membership rows to canonical GIDs.

    Rows whose gene ID cannot be normalized are dropped and listed in the
    returned report.

    Args:
        membership: (KEGG_ID, KEGG_PATH) DataFrame
        normalizer: IdentifierNormalizer with the organism's rules and aliases

    Returns:
        Tuple of ((GID, KEGG_PATH) DataFrame, normalization report)
    """
    membership = membership.cast(MEMBERSHIP_SCHEMA)
    df, report = normalizer.normalize_frame(membership, column="KEGG_ID", target="GID")
    df = df.select(["GID", "KEGG_PATH"]).unique(maintain_order=True)

    logger.info(
        "normalize_kegg_membership_complete",
        input_rows=membership.height,
        output_rows=df.height,
        unmapped=len(report.unmapped_ids),
    )
    return df, report


def build_kegg_table(
    gene_pathways: pl.DataFrame,
    pathways: pl.DataFrame,
) -> pl.DataFrame:
    """Join gene/pathway links to pathway metadata.

    Links to pathways without metadata keep empty name, class and
    description.

    Returns:
        DataFrame with GID, KEGG_PATH, KEGG_NAME, KEGG_CLASS, KEGG_DESCRIPTION
    """
    pathways = pathways.cast(PATHWAY_SCHEMA).unique(subset=["KEGG_PATH"], keep="first")
    df = (
        gene_pathways.cast(GENE_PATHWAY_SCHEMA)
        .join(pathways, on="KEGG_PATH", how="left")
        .with_columns(
            pl.col("KEGG_NAME").fill_null(""),
            pl.col("KEGG_CLASS").fill_null(""),
            pl.col("KEGG_DESCRIPTION").fill_null(""),
        )
        .select(KEGG_COLUMNS)
        .cast(KEGG_SCHEMA)
        .unique(maintain_order=True)
    )

    logger.info("build_kegg_table_complete", rows=df.height, genes=df["GID"].n_unique())
    return df
