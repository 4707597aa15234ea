"""Parsers for EuPathDB gene reports and GFF3 gene models."""

from eupath_orgdb.parsing.gff import (
    GeneRecord,
    chromosome_table,
    gene_info_table,
    parse_gff_genes,
)
from eupath_orgdb.parsing.report import (
    GO_FIELDS,
    INTERPRO_FIELDS,
    GeneReportParser,
    ParserState,
    ReportTables,
    get_value,
    open_report,
    parse_gene_report,
    parse_gene_types,
    parse_go_terms,
    parse_interpro_domains,
)

__all__ = [
    "GeneRecord",
    "chromosome_table",
    "gene_info_table",
    "parse_gff_genes",
    "GO_FIELDS",
    "INTERPRO_FIELDS",
    "GeneReportParser",
    "ParserState",
    "ReportTables",
    "get_value",
    "open_report",
    "parse_gene_report",
    "parse_gene_types",
    "parse_go_terms",
    "parse_interpro_domains",
]
