"""Tests for the gene report state-machine parser."""

import gzip

import polars as pl
import pytest
from polars.testing import assert_frame_equal

from eupath_orgdb.errors import ParseError
from eupath_orgdb.parsing import (
    GeneReportParser,
    ParserState,
    get_value,
    parse_gene_report,
    parse_gene_types,
    parse_go_terms,
    parse_interpro_domains,
)

INTERPRO_HEADER = "[Name]\t[Interpro ID]\t[Primary ID]\t[Secondary ID]\t[Description]\t[Start Min]\t[End Min]\t[E-Value]"

REPORT = "\n".join([
    "Gene ID: LmjF.01.0010",
    "Gene Type: protein coding",
    "Product Description: hypothetical protein",
    "",
    "TABLE: GO Terms",
    "[Gene ID]\t[GO ID]\t[Ontology]\t[GO Term Name]\t[Source]\t[Evidence Code]",
    "GO:0005737\tCellular Component\tcytoplasm\tinterpro\tIEA",
    "GO:0005737\tCellular Component\tcytoplasm\tGeneDB\tIDA",
    "",
    "TABLE: InterPro Domains",
    INTERPRO_HEADER,
    "PF00001\tIPR000276\tPF00001\t7tm_1\tGPCR, rhodopsin-like\t10\t250\t1.2e-20",
    "",
    "------------------------------------------------------------",
    "",
    "Gene ID: LmjF.01.0020",
    "Gene Type: protein coding",
    "TABLE: GO Terms",
    "GO:0003674\tMolecular Function\tmolecular_function\tGeneDB\tND",
    "",
])


@pytest.fixture
def report_file(tmp_path):
    path = tmp_path / "Lmajor_Gene.txt"
    path.write_text(REPORT)
    return path


def test_get_value_strips_spaces():
    assert get_value("Gene ID: LmjF.01. 0010\n") == "LmjF.01.0010"
    assert get_value("Product: a: b c") == "bc"


def test_go_rows_carry_five_fields(report_file):
    tables = parse_gene_report(report_file)

    assert tables.go.columns == ["GID", "GO", "ONTOLOGY", "GO_TERM_NAME", "SOURCE", "EVIDENCE"]
    # One row per well-formed GO line
    assert tables.go.height == 3
    assert tables.gene_count == 2
    assert tables.malformed == []


def test_go_terms_tagged_with_current_gene(report_file):
    df = parse_go_terms(report_file)

    expected = pl.DataFrame({
        "GID": ["LmjF.01.0010", "LmjF.01.0010", "LmjF.01.0020"],
        "GO": ["GO:0005737", "GO:0005737", "GO:0003674"],
        "EVIDENCE": ["IEA", "IDA", "ND"],
    })
    assert_frame_equal(df, expected)


def test_interpro_table(report_file):
    df = parse_interpro_domains(report_file)

    assert df.height == 1
    row = df.row(0, named=True)
    assert row["GID"] == "LmjF.01.0010"
    assert row["interpro_id"] == "IPR000276"
    assert row["start_min"] == 10
    assert row["end_min"] == 250
    assert row["evalue"] == pytest.approx(1.2e-20)


def test_gene_types(report_file):
    df = parse_gene_types(report_file)

    assert df.to_dicts() == [
        {"GID": "LmjF.01.0010", "TYPE": "protein coding"},
        {"GID": "LmjF.01.0020", "TYPE": "protein coding"},
    ]


def test_gzipped_report(tmp_path):
    path = tmp_path / "Lmajor_Gene.txt.gz"
    with gzip.open(path, "wt") as f:
        f.write(REPORT)

    assert parse_go_terms(path).height == 3


def test_short_go_line_reported_not_coerced():
    parser = GeneReportParser(source="report.txt")
    tables = parser.parse_lines([
        "Gene ID: LmjF.01.0010",
        "GO:0005737\tCellular Component\tcytoplasm",
        "GO:0003674\tMolecular Function\tmolecular_function\tGeneDB\tND",
    ])

    assert tables.go.height == 1
    assert len(tables.malformed) == 1
    error = tables.malformed[0]
    assert error.source == "report.txt"
    assert error.line_number == 2


def test_strict_mode_raises_first_error():
    parser = GeneReportParser(source="report.txt", strict=True)

    with pytest.raises(ParseError) as exc_info:
        parser.parse_lines([
            "Gene ID: LmjF.01.0010",
            "GO:0005737\tCellular Component",
        ])

    assert "report.txt:2" in str(exc_info.value)


def test_annotation_before_gene_id_is_malformed():
    tables = GeneReportParser().parse_lines([
        "GO:0005737\tCellular Component\tcytoplasm\tinterpro\tIEA",
        "Gene ID: LmjF.01.0010",
    ])

    assert tables.go.height == 0
    assert len(tables.malformed) == 1


def test_empty_gene_id_resets_current_gene():
    tables = GeneReportParser().parse_lines([
        "Gene ID: LmjF.01.0010",
        "Gene ID: ",
        "GO:0005737\tCellular Component\tcytoplasm\tinterpro\tIEA",
    ])

    # Empty header plus the orphaned GO line
    assert len(tables.malformed) == 2
    assert tables.go.height == 0


def test_interpro_row_with_wrong_field_count():
    tables = GeneReportParser().parse_lines([
        "Gene ID: LmjF.01.0010",
        "TABLE: InterPro Domains",
        INTERPRO_HEADER,
        "PF00001\tIPR000276\tPF00001",
        "PF00002\tIPR000832\tPF00002\t7tm_2\tGPCR family 2\t5\t90\t0.001",
        "",
    ])

    assert tables.interpro.height == 1
    assert len(tables.malformed) == 1


def test_interpro_row_with_non_numeric_location_is_malformed():
    tables = GeneReportParser(source="report.txt").parse_lines([
        "Gene ID: LmjF.01.0010",
        "TABLE: InterPro Domains",
        INTERPRO_HEADER,
        "PF00001\tIPR000276\tPF00001\t7tm_1\tGPCR\tten\t250\tnot-a-number",
        "PF00002\tIPR000832\tPF00002\t7tm_2\tGPCR family 2\t5\t90\t0.001",
        "",
    ])

    assert tables.interpro.get_column("primary_id").to_list() == ["PF00002"]
    assert len(tables.malformed) == 1
    assert tables.malformed[0].line_number == 4


def test_interpro_non_numeric_location_raises_in_strict_mode():
    parser = GeneReportParser(source="report.txt", strict=True)

    with pytest.raises(ParseError):
        parser.parse_lines([
            "Gene ID: LmjF.01.0010",
            "TABLE: InterPro Domains",
            INTERPRO_HEADER,
            "PF00001\tIPR000276\tPF00001\t7tm_1\tGPCR\t10\t250\t1e-x",
        ])


def test_interpro_empty_numeric_cells_are_null():
    tables = GeneReportParser().parse_lines([
        "Gene ID: LmjF.01.0010",
        "TABLE: InterPro Domains",
        INTERPRO_HEADER,
        "PF00001\tIPR000276\tPF00001\t7tm_1\tGPCR\t10\t250\t",
        "",
    ])

    row = tables.interpro.row(0, named=True)
    assert row["start_min"] == 10
    assert row["end_min"] == 250
    assert row["evalue"] is None
    assert tables.malformed == []


def test_unterminated_interpro_table_ends_at_next_gene():
    tables = GeneReportParser().parse_lines([
        "Gene ID: LmjF.01.0010",
        "TABLE: InterPro Domains",
        INTERPRO_HEADER,
        "PF00001\tIPR000276\tPF00001\t7tm_1\tGPCR\t10\t250\t1e-5",
        "Gene ID: LmjF.01.0020",
        "GO:0003674\tMolecular Function\tmolecular_function\tGeneDB\tND",
    ])

    assert tables.interpro.get_column("GID").to_list() == ["LmjF.01.0010"]
    assert tables.go.get_column("GID").to_list() == ["LmjF.01.0020"]
    assert tables.malformed == []


def test_state_transitions():
    parser = GeneReportParser()
    assert parser.state == ParserState.AWAITING_GENE_ID

    parser.feed("Gene ID: LmjF.01.0010")
    assert parser.state == ParserState.IN_GENE_BLOCK
    assert parser.current_gene_id == "LmjF.01.0010"

    parser.feed("TABLE: InterPro Domains")
    assert parser.state == ParserState.TABLE_HEADER

    parser.feed(INTERPRO_HEADER)
    assert parser.state == ParserState.IN_TABLE

    parser.feed("")
    assert parser.state == ParserState.IN_GENE_BLOCK


def test_empty_report_yields_typed_empty_tables():
    tables = GeneReportParser().parse_lines([])

    assert tables.go.height == 0
    assert tables.interpro.schema["start_min"] == pl.Int64
    assert tables.gene_types.columns == ["GID", "TYPE"]
