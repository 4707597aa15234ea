"""EuPathDB flat-file gene report parser.

The gene report interleaves per-gene blocks:

    Gene ID: LmjF.19.1390
    Gene Type: protein coding
    ...
    TABLE: GO Terms
    [GO ID]	[Ontology]	[GO Term Name]	[Source]	[Evidence Code]	...
    GO:0003777	molecular_function	microtubule motor activity	Interpro	IEA
    ...
    TABLE: InterPro Domains
    [Name]	[Interpro ID]	[Primary ID]	...
    PF00225	IPR001752	PF00225	Kinesin	Kinesin motor domain	35	366	1.2e-98

    Gene ID: ...

Note: EuPathDB includes some GO annotations for obsolete terms (for example
GO:0003702 on LmjF.19.1390). They are parsed here and removed later during
synonym resolution.
"""

import gzip
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TextIO

import polars as pl
import structlog

from eupath_orgdb.errors import ParseError

logger = structlog.get_logger()

GO_FIELDS = ["GO", "ONTOLOGY", "GO_TERM_NAME", "SOURCE", "EVIDENCE"]
INTERPRO_FIELDS = [
    "name",
    "interpro_id",
    "primary_id",
    "secondary_id",
    "description",
    "start_min",
    "end_min",
    "evalue",
]

GO_SCHEMA = {"GID": pl.Utf8, **{name: pl.Utf8 for name in GO_FIELDS}}
INTERPRO_SCHEMA = {
    "GID": pl.Utf8,
    "name": pl.Utf8,
    "interpro_id": pl.Utf8,
    "primary_id": pl.Utf8,
    "secondary_id": pl.Utf8,
    "description": pl.Utf8,
    "start_min": pl.Int64,
    "end_min": pl.Int64,
    "evalue": pl.Float64,
}
GENE_TYPE_SCHEMA = {"GID": pl.Utf8, "TYPE": pl.Utf8}

GENE_ID_PREFIX = "Gene ID"
GENE_TYPE_PREFIX = "Gene Type"
GO_PREFIX = "GO:"
INTERPRO_TABLE_MARKER = "TABLE: InterPro Domains"


class ParserState(Enum):
    """Position of the parser within the report."""

    AWAITING_GENE_ID = "awaiting_gene_id"
    IN_GENE_BLOCK = "in_gene_block"
    TABLE_HEADER = "table_header"
    IN_TABLE = "in_table"


@dataclass
class ReportTables:
    """Tables extracted from one gene report.

    Attributes:
        go: GID plus the five GO fields, one row per well-formed GO line
        interpro: GID plus the InterPro domain columns (exact duplicates collapsed)
        gene_types: GID and TYPE
        malformed: Lines that were dropped, as ParseError instances
        gene_count: Number of Gene ID headers seen
    """
    go: pl.DataFrame
    interpro: pl.DataFrame
    gene_types: pl.DataFrame
    malformed: list[ParseError] = field(default_factory=list)
    gene_count: int = 0


def get_value(line: str) -> str:
    """Return the value of a ``key: value`` line with all spaces removed."""
    return line.rstrip("\r\n").split(": ")[-1].replace(" ", "")


def _optional_number(value: str, kind: type) -> int | float | None:
    """Convert a numeric cell; EuPathDB leaves the cell empty when there is no value."""
    value = value.strip()
    if not value:
        return None
    return kind(value)


@contextmanager
def open_report(path: Path | str) -> Iterator[TextIO]:
    """Open a report for text reading, decompressing ``.gz`` files."""
    path = Path(path)
    if path.suffix == ".gz":
        fp = gzip.open(path, "rt", encoding="utf-8", errors="replace")
    else:
        fp = open(path, "r", encoding="utf-8", errors="replace")
    try:
        yield fp
    finally:
        fp.close()


class GeneReportParser:
    """Single-pass state machine over a gene report.

    The current gene ID is explicit parser state: it is set by each
    ``Gene ID`` line and applies to every annotation line until the next one.

    Args:
        source: Name of the input, used in error locations
        strict: If True, raise the first ParseError instead of recording it
    """

    def __init__(self, source: str = "<stream>", strict: bool = False):
        self.source = source
        self.strict = strict
        self.state = ParserState.AWAITING_GENE_ID
        self.current_gene_id: str | None = None
        self.line_number = 0
        self.gene_count = 0
        self.malformed: list[ParseError] = []
        self._go_rows: list[tuple] = []
        self._interpro_rows: list[tuple] = []
        self._gene_types: list[tuple[str, str]] = []

    def _error(self, message: str, line: str) -> None:
        error = ParseError(
            message,
            source=self.source,
            line_number=self.line_number,
            line=line.rstrip("\r\n"),
        )
        if self.strict:
            raise error
        logger.warning(
            "report_malformed_line",
            source=self.source,
            line_number=self.line_number,
            reason=message,
        )
        self.malformed.append(error)

    def _require_gene(self, line: str) -> bool:
        if self.current_gene_id is None:
            self._error("annotation line before any Gene ID header", line)
            return False
        return True

    def feed(self, line: str) -> None:
        """Consume one line of input."""
        self.line_number += 1

        if self.state == ParserState.TABLE_HEADER:
            # Column header row of the InterPro table
            self.state = ParserState.IN_TABLE
            return

        if self.state == ParserState.IN_TABLE:
            if not line.strip():
                self.state = ParserState.IN_GENE_BLOCK
                return
            if not line.startswith(GENE_ID_PREFIX):
                self._handle_interpro_row(line)
                return
            # Unterminated table: the next gene block has started
            self.state = ParserState.IN_GENE_BLOCK

        if line.startswith(GENE_ID_PREFIX):
            self._handle_gene_id(line)
        elif line.startswith(GENE_TYPE_PREFIX):
            if self._require_gene(line):
                self._gene_types.append(
                    (self.current_gene_id, line.rstrip("\r\n").split(": ")[-1].strip())
                )
        elif line.startswith(GO_PREFIX):
            self._handle_go_line(line)
        elif INTERPRO_TABLE_MARKER in line:
            if self._require_gene(line):
                self.state = ParserState.TABLE_HEADER

    def _handle_gene_id(self, line: str) -> None:
        gene_id = get_value(line)
        if not gene_id or ": " not in line:
            self.current_gene_id = None
            self.state = ParserState.AWAITING_GENE_ID
            self._error("Gene ID header without a value", line)
            return
        self.current_gene_id = gene_id
        self.gene_count += 1
        self.state = ParserState.IN_GENE_BLOCK

    def _handle_go_line(self, line: str) -> None:
        if not self._require_gene(line):
            return
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < len(GO_FIELDS):
            self._error(
                f"GO line has {len(fields)} fields, expected at least {len(GO_FIELDS)}",
                line,
            )
            return
        self._go_rows.append((self.current_gene_id, *fields[: len(GO_FIELDS)]))

    def _handle_interpro_row(self, line: str) -> None:
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) != len(INTERPRO_FIELDS):
            self._error(
                f"InterPro row has {len(fields)} fields, expected {len(INTERPRO_FIELDS)}",
                line,
            )
            return

        *text, start_min, end_min, evalue = fields
        try:
            numbers = (
                _optional_number(start_min, int),
                _optional_number(end_min, int),
                _optional_number(evalue, float),
            )
        except ValueError as e:
            self._error(f"InterPro row has a non-numeric location or E-value: {e}", line)
            return
        self._interpro_rows.append((self.current_gene_id, *text, *numbers))

    def parse_lines(self, lines: Iterable[str]) -> ReportTables:
        """Consume an iterable of lines and return the extracted tables."""
        for line in lines:
            self.feed(line)
        return self.result()

    def result(self) -> ReportTables:
        """Build the output tables from the rows consumed so far."""
        go = pl.DataFrame(self._go_rows, schema=GO_SCHEMA, orient="row")

        interpro = pl.DataFrame(
            self._interpro_rows, schema=INTERPRO_SCHEMA, orient="row"
        ).unique(maintain_order=True)

        gene_types = pl.DataFrame(
            self._gene_types, schema=GENE_TYPE_SCHEMA, orient="row"
        ).unique(subset=["GID"], keep="first", maintain_order=True)

        logger.info(
            "report_parse_complete",
            source=self.source,
            genes=self.gene_count,
            go_rows=go.height,
            interpro_rows=interpro.height,
            gene_types=gene_types.height,
            malformed=len(self.malformed),
        )

        return ReportTables(
            go=go,
            interpro=interpro,
            gene_types=gene_types,
            malformed=list(self.malformed),
            gene_count=self.gene_count,
        )


def parse_gene_report(path: Path | str, strict: bool = False) -> ReportTables:
    """Parse a gene report file (plain or gzipped) in a single pass."""
    path = Path(path)
    logger.info("report_parse_start", path=str(path))
    parser = GeneReportParser(source=str(path), strict=strict)
    with open_report(path) as fp:
        return parser.parse_lines(fp)


def parse_go_terms(path: Path | str, strict: bool = False) -> pl.DataFrame:
    """Return the gene/GO pairs of a report as (GID, GO, EVIDENCE).

    Because each gene may have multiple GO terms, a GID may appear on
    multiple rows. Exact duplicate rows are collapsed.
    """
    tables = parse_gene_report(path, strict=strict)
    return tables.go.select(["GID", "GO", "EVIDENCE"]).unique(maintain_order=True)


def parse_interpro_domains(path: Path | str, strict: bool = False) -> pl.DataFrame:
    """Return the gene/InterPro domain rows of a report."""
    return parse_gene_report(path, strict=strict).interpro


def parse_gene_types(path: Path | str, strict: bool = False) -> pl.DataFrame:
    """Return the (GID, TYPE) table of a report."""
    return parse_gene_report(path, strict=strict).gene_types
