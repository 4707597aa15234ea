"""Tests for GFF3 gene model parsing and the gene info / chromosome tables."""

import gzip

import pytest

from eupath_orgdb.errors import MissingPrimarySource, ParseError
from eupath_orgdb.parsing import (
    chromosome_table,
    gene_info_table,
    parse_gff_genes,
)
from eupath_orgdb.parsing.gff import parse_attributes

GFF = "\n".join([
    "##gff-version 3",
    "##sequence-region LmjF.01 1 268984",
    "LmjF.01\tEuPathDB\tgene\t3704\t10348\t.\t-\t.\t"
    "ID=LmjF.01.0010;Name=LmjF.01.0010;description=hypothetical+protein%2C+conserved;"
    "Alias=LMJF_01_0010,LmjF01.0010;ebi_biotype=protein_coding",
    "LmjF.01\tEuPathDB\tmRNA\t3704\t10348\t.\t-\t.\tID=LmjF.01.0010:mRNA;Parent=LmjF.01.0010",
    "LmjF.01\tEuPathDB\tgene\t12000\t13000\t.\t+\t.\tID=LmjF.01.0020;description=kinesin",
    "LmjF.10\tEuPathDB\tgene\t500\t571\t.\t+\t.\tID=LmjF.10.TRNALYS.01;ebi_biotype=tRNA",
    "##FASTA",
    ">LmjF.01",
    "LmjF.01\tEuPathDB\tgene\t1\t2\t.\t+\t.\tID=NotAGene",
    "",
])


@pytest.fixture
def gff_file(tmp_path):
    path = tmp_path / "Lmajor.gff"
    path.write_text(GFF)
    return path


def test_parse_gene_features_only(gff_file):
    records = parse_gff_genes(gff_file)

    assert [r.gid for r in records] == [
        "LmjF.01.0010",
        "LmjF.01.0020",
        "LmjF.10.TRNALYS.01",
    ]


def test_attributes_decoded(gff_file):
    first = parse_gff_genes(gff_file)[0]

    assert first.description == "hypothetical protein, conserved"
    assert first.aliases == ("LMJF_01_0010", "LmjF01.0010")
    assert first.gene_type == "protein_coding"
    assert first.strand == "-"
    assert (first.start, first.end) == (3704, 10348)


def test_parse_attributes_plus_only_in_description():
    attributes = parse_attributes("ID=a+b;description=two+words")
    assert attributes == {"ID": "a+b", "description": "two words"}


def test_gzipped_gff(tmp_path):
    path = tmp_path / "Lmajor.gff.gz"
    with gzip.open(path, "wt") as f:
        f.write(GFF)

    assert len(parse_gff_genes(path)) == 3


def test_missing_gff_is_fatal(tmp_path):
    with pytest.raises(MissingPrimarySource):
        parse_gff_genes(tmp_path / "absent.gff")


def test_gff_without_genes_is_fatal(tmp_path):
    path = tmp_path / "empty.gff"
    path.write_text("##gff-version 3\nLmjF.01\tEuPathDB\tCDS\t1\t9\t.\t+\t0\tID=x\n")

    with pytest.raises(MissingPrimarySource):
        parse_gff_genes(path)


def test_malformed_gene_line_skipped_in_lenient_mode(tmp_path):
    path = tmp_path / "bad.gff"
    path.write_text(
        "LmjF.01\tEuPathDB\tgene\tabc\t10\t.\t+\t.\tID=LmjF.01.0001\n"
        "LmjF.01\tEuPathDB\tgene\t1\t10\t.\t+\t.\tName=noid\n"
        "LmjF.01\tEuPathDB\tgene\t20\t30\t.\t+\t.\tID=LmjF.01.0002\n"
        "LmjF.01\tEuPathDB\tgene\t40\t50\t.\t+\t.\tID=LmjF.01.0002\n"
    )

    records = parse_gff_genes(path)
    assert [r.gid for r in records] == ["LmjF.01.0002"]


def test_malformed_gene_line_raises_in_strict_mode(tmp_path):
    path = tmp_path / "bad.gff"
    path.write_text("LmjF.01\tEuPathDB\tgene\t1\t10\t.\t+\n")

    with pytest.raises(ParseError) as exc_info:
        parse_gff_genes(path, strict=True)

    assert exc_info.value.line_number == 1


def test_gene_info_table(gff_file):
    df = gene_info_table(parse_gff_genes(gff_file))

    assert df.columns[0] == "GID"
    assert "GENEDESCRIPTION" in df.columns
    assert "GENEALIAS" in df.columns
    assert "GENEID" not in df.columns
    row = df.row(0, named=True)
    assert row["GENEALIAS"] == "LMJF_01_0010,LmjF01.0010"
    # Attribute absent on a gene stays null
    assert df.row(1, named=True)["GENEEBI_BIOTYPE"] is None


def test_chromosome_table(gff_file):
    df = chromosome_table(parse_gff_genes(gff_file))

    assert df.to_dicts() == [
        {"GID": "LmjF.01.0010", "CHR": "LmjF.01"},
        {"GID": "LmjF.01.0020", "CHR": "LmjF.01"},
        {"GID": "LmjF.10.TRNALYS.01", "CHR": "LmjF.10"},
    ]
