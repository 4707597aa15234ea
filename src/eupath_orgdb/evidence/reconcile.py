"""Merge and deduplicate annotation rows carrying evidence codes.

GO evidence codes rank how an annotation was derived
(http://geneontology.org/page/guide-go-evidence-codes). IEA ("Inferred from
Electronic Annotation") is the automatically generated, lowest-confidence
code; everything else is curated or experimental evidence.
"""

import polars as pl
import structlog

logger = structlog.get_logger()

AUTOMATIC_EVIDENCE_CODES = ("IEA",)


def _automatic_mask(evidence_col: str, automatic_codes: tuple[str, ...]) -> pl.Expr:
    # Null evidence is treated as non-automatic
    return pl.col(evidence_col).is_in(list(automatic_codes)).fill_null(False)


def partition_by_evidence(
    df: pl.DataFrame,
    evidence_col: str = "EVIDENCE",
    automatic_codes: tuple[str, ...] = AUTOMATIC_EVIDENCE_CODES,
) -> tuple[pl.DataFrame, pl.DataFrame]:
    """Split rows into (automatic, other) by evidence code."""
    mask = _automatic_mask(evidence_col, automatic_codes)
    return df.filter(mask), df.filter(~mask)


def reconcile_evidence(
    df: pl.DataFrame,
    key: tuple[str, str] = ("GID", "GO"),
    evidence_col: str = "EVIDENCE",
    automatic_codes: tuple[str, ...] = AUTOMATIC_EVIDENCE_CODES,
    suppress_redundant_automatic: bool = False,
) -> pl.DataFrame:
    """Produce the canonical, deduplicated annotation set.

    - Non-automatic rows are deduplicated on ``key``; the first row for each
      (GID, term) pair is kept.
    - Automatic rows are retained alongside them (exact duplicate rows
      collapsed), so a pair may appear once curated and once IEA.
    - With ``suppress_redundant_automatic`` an automatic row is dropped when
      its pair already has a non-automatic row.

    The result is idempotent: reconciling it again returns the same rows.
    Row order is not significant.

    Args:
        df: Annotation rows containing the key and evidence columns
        key: Columns identifying a gene/term pair
        evidence_col: Evidence code column
        automatic_codes: Codes considered automatically inferred
        suppress_redundant_automatic: Drop automatic rows shadowed by stronger evidence

    Returns:
        Reconciled DataFrame with the same columns as the input
    """
    key_cols = list(key)
    automatic, other = partition_by_evidence(df, evidence_col, automatic_codes)

    other = other.unique(subset=key_cols, keep="first", maintain_order=True)
    automatic = automatic.unique(maintain_order=True)

    if suppress_redundant_automatic:
        automatic = automatic.join(other.select(key_cols), on=key_cols, how="anti")

    result = pl.concat([other, automatic], how="vertical")

    logger.info(
        "reconcile_evidence_complete",
        input_rows=df.height,
        other_rows=other.height,
        automatic_rows=automatic.height,
        output_rows=result.height,
    )

    return result
