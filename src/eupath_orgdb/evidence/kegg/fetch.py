"""Fetch KEGG pathway membership and metadata for an organism."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import polars as pl
import structlog

from eupath_orgdb.errors import FetchError
from eupath_orgdb.evidence.kegg.models import (
    MEMBERSHIP_SCHEMA,
    PATHWAY_SCHEMA,
    PathwayRecord,
)

if TYPE_CHECKING:
    from eupath_orgdb.api_clients.kegg import KEGGClient

logger = structlog.get_logger()


@dataclass
class PathwaySlot:
    """Result of fetching one pathway. Each task owns exactly one slot."""
    pathway: str
    record: PathwayRecord | None = None
    genes: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class KEGGFetchResult:
    """Merged output of a KEGG fetch.

    Attributes:
        membership: (KEGG_ID, KEGG_PATH) rows with foreign gene IDs
        pathways: (KEGG_PATH, KEGG_NAME, KEGG_CLASS, KEGG_DESCRIPTION) rows
        failures: pathway ID -> error message for pathways that failed
    """
    membership: pl.DataFrame
    pathways: pl.DataFrame
    failures: dict[str, str] = field(default_factory=dict)


def _fetch_one(client: "KEGGClient", organism_code: str, slot: PathwaySlot) -> PathwaySlot:
    slot.record = client.get_pathway(slot.pathway)
    slot.genes = client.pathway_genes(organism_code, slot.pathway)
    return slot


def merge_slots(slots: list[PathwaySlot]) -> KEGGFetchResult:
    """Combine per-pathway slots into membership and pathway tables."""
    membership_rows = []
    pathway_rows = []
    failures = {}

    for slot in slots:
        if slot.error is not None or slot.record is None:
            failures[slot.pathway] = slot.error or "not fetched"
            continue
        pathway_rows.append(slot.record.as_row())
        membership_rows.extend((gene, slot.pathway) for gene in slot.genes)

    membership = pl.DataFrame(
        membership_rows, schema=MEMBERSHIP_SCHEMA, orient="row"
    ).unique(maintain_order=True)
    pathways = pl.DataFrame(pathway_rows, schema=PATHWAY_SCHEMA, orient="row")

    return KEGGFetchResult(membership=membership, pathways=pathways, failures=failures)


def fetch_kegg_pathways(
    client: "KEGGClient",
    organism_code: str,
    max_workers: int = 4,
) -> KEGGFetchResult:
    """Fetch every pathway of a KEGG organism with a bounded worker pool.

    Each pathway is fetched (metadata, then member genes) by one task that
    writes only its own slot. Results are merged once, after all tasks have
    completed or failed. A pathway whose fetch fails is recorded in
    ``failures`` and skipped.

    Args:
        client: KEGGClient
        organism_code: KEGG organism code (e.g. 'lma')
        max_workers: Maximum concurrent pathway fetches

    Returns:
        KEGGFetchResult

    Raises:
        FetchError: If the pathway list cannot be fetched, or the fetch is
            interrupted (pending tasks are cancelled first)
    """
    pathway_ids = client.list_pathways(organism_code)
    slots = [PathwaySlot(pathway=p) for p in pathway_ids]

    logger.info(
        "fetch_kegg_pathways_start",
        organism=organism_code,
        pathways=len(slots),
        max_workers=max_workers,
    )

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = {
            executor.submit(_fetch_one, client, organism_code, slot): slot
            for slot in slots
        }
        for future in as_completed(futures):
            slot = futures[future]
            try:
                future.result()
            except FetchError as e:
                slot.error = str(e)
                logger.warning(
                    "kegg_pathway_failed",
                    organism=organism_code,
                    pathway=slot.pathway,
                    error=str(e),
                )
    except KeyboardInterrupt as e:
        done = sum(1 for s in slots if s.record is not None)
        logger.warning(
            "fetch_kegg_pathways_interrupted",
            organism=organism_code,
            completed=done,
            total=len(slots),
        )
        raise FetchError(
            f"KEGG fetch interrupted after {done}/{len(slots)} pathways",
            organism=organism_code,
        ) from e
    finally:
        # Cancels queued tasks when the loop exits early
        executor.shutdown(wait=False, cancel_futures=True)

    result = merge_slots(slots)

    logger.info(
        "fetch_kegg_pathways_complete",
        organism=organism_code,
        pathways=result.pathways.height,
        memberships=result.membership.height,
        failed=len(result.failures),
    )
    return result
