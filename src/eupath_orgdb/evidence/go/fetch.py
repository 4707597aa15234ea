"""Fetch GO annotations and gene types from the EuPathDB web services."""

import re
from typing import Any

import polars as pl
import structlog

from eupath_orgdb.api_clients.eupathdb import EuPathDBClient
from eupath_orgdb.errors import ParseError
from eupath_orgdb.evidence.go.models import EUPATHDB_GO_TABLE, GO_SCHEMA, AnnotationRow
from eupath_orgdb.evidence.reconcile import reconcile_evidence
from eupath_orgdb.parsing.report import GENE_TYPE_SCHEMA

logger = structlog.get_logger()

GO_ID_FIELD = "go_id"
EVIDENCE_FIELD = "evidence_code"
GENE_TYPE_FIELD = "gene_type"


def strip_record_id(record_id: str) -> str:
    """Drop a trailing project qualifier (``LmjF.01.0030/TriTrypDB`` -> ``LmjF.01.0030``)."""
    return re.sub(r"/.*", "", record_id)


def _field_values(fields: Any) -> dict[str, Any]:
    """Return a name -> value mapping for a row's fields.

    EuPathDB returns fields as a list of ``{"name": ..., "value": ...}``
    objects; a plain mapping is accepted as well.
    """
    if isinstance(fields, dict):
        return dict(fields)
    return {f.get("name"): f.get("value") for f in fields or []}


def _find_table(record: dict[str, Any], table_name: str) -> dict[str, Any] | None:
    tables = record.get("tables") or []
    for table in tables:
        if table.get("name") == table_name:
            return table
    # Only the requested table was asked for; older responses omit its name
    if len(tables) == 1 and "name" not in tables[0]:
        return tables[0]
    return None


def parse_go_records(
    records: list[dict[str, Any]],
    organism: str = "<remote>",
) -> list[AnnotationRow]:
    """Extract GO annotation rows from EuPathDB gene records.

    Example row fields (TriTrypDB 31), in response order: transcript_ids,
    ontology, go_id, go_term_name, source, evidence_code, is_not, reference,
    evidence_code_parameter. The GO ID and evidence code are read by field
    name; a row lacking either is a schema change and raises.

    Genes with an empty GO table are skipped.

    Raises:
        ParseError: If a row lacks the go_id or evidence_code field
    """
    rows: list[AnnotationRow] = []
    skipped = 0

    for record in records:
        gene_id = strip_record_id(str(record.get("id", "")))
        table = _find_table(record, EUPATHDB_GO_TABLE)
        table_rows = (table or {}).get("rows") or []

        if not table_rows:
            skipped += 1
            continue

        for row in table_rows:
            values = _field_values(row.get("fields"))
            missing = [f for f in (GO_ID_FIELD, EVIDENCE_FIELD) if f not in values]
            if missing:
                raise ParseError(
                    f"GO table row for {gene_id} lacks field(s) {missing}; "
                    f"available: {sorted(k for k in values if k)}",
                    source=f"{organism} {EUPATHDB_GO_TABLE}",
                )
            go_id = values[GO_ID_FIELD]
            if not go_id:
                continue
            rows.append(AnnotationRow(
                gid=gene_id,
                term=go_id,
                evidence=values[EVIDENCE_FIELD],
                source="remote",
            ))

    logger.info(
        "parse_go_records_complete",
        organism=organism,
        genes=len(records),
        genes_without_go=skipped,
        rows=len(rows),
    )
    return rows


def fetch_go_terms(client: EuPathDBClient, organism: str) -> pl.DataFrame:
    """Query EuPathDB for the GO annotations of an organism.

    Args:
        client: EuPathDBClient for the organism's provider site
        organism: Full organism name (e.g. "Leishmania major strain Friedlin")

    Returns:
        One-to-many (GID, GO, EVIDENCE) DataFrame, reconciled so that each
        gene/term pair keeps one curated row plus any IEA rows

    Raises:
        FetchError: If the query fails after retries
        ParseError: If the response rows do not carry the expected fields
    """
    logger.info("fetch_go_terms_start", organism=organism)

    records = client.fetch_records(organism, f"o-tables={EUPATHDB_GO_TABLE}")
    rows = parse_go_records(records, organism=organism)
    df = pl.DataFrame([r.as_go_row() for r in rows], schema=GO_SCHEMA, orient="row")

    return reconcile_evidence(df)


def fetch_gene_types(client: EuPathDBClient, organism: str) -> pl.DataFrame:
    """Query EuPathDB for the gene type of every gene of an organism.

    Returns:
        DataFrame with GID and TYPE columns

    Raises:
        FetchError: If the query fails after retries
        ParseError: If records lack the gene_type field
    """
    logger.info("fetch_gene_types_start", organism=organism)

    records = client.fetch_records(
        organism,
        f"o-fields={GENE_TYPE_FIELD}",
        service=client.gene_type_service,
    )

    rows = []
    for record in records:
        values = _field_values(record.get("fields"))
        if GENE_TYPE_FIELD not in values:
            raise ParseError(
                f"gene record {record.get('id')} lacks field {GENE_TYPE_FIELD}",
                source=f"{organism} gene fields",
            )
        rows.append((strip_record_id(str(record.get("id", ""))), values[GENE_TYPE_FIELD]))

    df = pl.DataFrame(rows, schema=GENE_TYPE_SCHEMA, orient="row")
    logger.info("fetch_gene_types_complete", organism=organism, genes=df.height)
    return df
