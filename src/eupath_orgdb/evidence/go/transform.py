"""Merge GO annotation sources, resolve term synonyms and reconcile evidence."""

from dataclasses import dataclass

import polars as pl
import structlog

from eupath_orgdb.evidence.go.models import GO_COLUMNS, GO_SCHEMA
from eupath_orgdb.evidence.go.ontology import GeneOntology
from eupath_orgdb.evidence.reconcile import reconcile_evidence

logger = structlog.get_logger()


@dataclass
class SynonymResolution:
    """Counts from GO synonym resolution.

    Attributes:
        rewritten: Rows whose alternate GO ID was replaced by the primary ID
        dropped: Rows whose term is obsolete or unknown to the ontology
        dropped_terms: Distinct GO IDs that were dropped
    """
    rewritten: int = 0
    dropped: int = 0
    dropped_terms: list[str] | None = None


def resolve_go_synonyms(
    df: pl.DataFrame,
    ontology: GeneOntology,
) -> tuple[pl.DataFrame, SynonymResolution]:
    """Map alternate GO IDs to primary IDs and drop obsolete/unknown terms.

    Args:
        df: DataFrame with a GO column
        ontology: Loaded GeneOntology

    Returns:
        Tuple of (resolved DataFrame with exact duplicates collapsed, counts)
    """
    if df.height == 0:
        return df, SynonymResolution(dropped_terms=[])

    terms = df.get_column("GO").drop_nulls().unique().to_list()
    lookup = {term: ontology.resolve(term) for term in terms}

    joined = df.with_columns(
        pl.col("GO")
        .replace_strict(lookup, default=None, return_dtype=pl.Utf8)
        .alias("_primary")
    )
    rewritten = joined.filter(
        pl.col("_primary").is_not_null() & (pl.col("_primary") != pl.col("GO"))
    ).height
    dropped_rows = joined.filter(pl.col("_primary").is_null())
    dropped_terms = sorted(set(dropped_rows.get_column("GO").drop_nulls().to_list()))

    resolved = (
        joined.filter(pl.col("_primary").is_not_null())
        .with_columns(pl.col("_primary").alias("GO"))
        .drop("_primary")
        .select(df.columns)
        .unique(maintain_order=True)
    )

    stats = SynonymResolution(
        rewritten=rewritten,
        dropped=dropped_rows.height,
        dropped_terms=dropped_terms,
    )

    if stats.dropped:
        logger.warning(
            "go_terms_dropped",
            rows=stats.dropped,
            terms=len(dropped_terms),
            examples=dropped_terms[:5],
        )
    logger.info("resolve_go_synonyms_complete", rewritten=rewritten, rows=resolved.height)

    return resolved, stats


def process_go_evidence(
    sources: list[pl.DataFrame],
    ontology: GeneOntology | None = None,
    suppress_redundant_automatic: bool = False,
) -> tuple[pl.DataFrame, SynonymResolution | None]:
    """End-to-end GO processing across sources.

    Composes: concat sources -> resolve synonyms (if an ontology is given)
    -> reconcile evidence.

    Args:
        sources: (GID, GO, EVIDENCE) DataFrames from the report and/or remote
        ontology: Optional GeneOntology for synonym resolution
        suppress_redundant_automatic: Passed through to reconcile_evidence

    Returns:
        Tuple of (reconciled GO table, synonym resolution counts or None)
    """
    frames = [s.select(GO_COLUMNS).cast(GO_SCHEMA) for s in sources]
    if frames:
        df = pl.concat(frames, how="vertical")
    else:
        df = pl.DataFrame(schema=GO_SCHEMA)

    logger.info("process_go_evidence_start", sources=len(frames), rows=df.height)

    stats = None
    if ontology is not None:
        df, stats = resolve_go_synonyms(df, ontology)

    df = reconcile_evidence(df, suppress_redundant_automatic=suppress_redundant_automatic)

    logger.info("process_go_evidence_complete", rows=df.height)
    return df, stats
