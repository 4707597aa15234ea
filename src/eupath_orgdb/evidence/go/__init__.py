"""GO annotation evidence layer."""

from eupath_orgdb.evidence.go.fetch import (
    fetch_gene_types,
    fetch_go_terms,
    parse_go_records,
    strip_record_id,
)
from eupath_orgdb.evidence.go.models import (
    GO_COLUMNS,
    GO_SCHEMA,
    GO_TABLE_NAME,
    AnnotationRow,
)
from eupath_orgdb.evidence.go.ontology import GeneOntology, load_obo
from eupath_orgdb.evidence.go.transform import (
    SynonymResolution,
    process_go_evidence,
    resolve_go_synonyms,
)

__all__ = [
    "fetch_gene_types",
    "fetch_go_terms",
    "parse_go_records",
    "strip_record_id",
    "GO_COLUMNS",
    "GO_SCHEMA",
    "GO_TABLE_NAME",
    "AnnotationRow",
    "GeneOntology",
    "load_obo",
    "SynonymResolution",
    "process_go_evidence",
    "resolve_go_synonyms",
]
