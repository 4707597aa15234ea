"""Tests for annotation table writers."""

from pathlib import Path

import polars as pl
import pytest
import yaml

from eupath_orgdb.config.schema import OrganismConfig
from eupath_orgdb.output import write_annotation_tables, write_unmapped_ids
from eupath_orgdb.pipeline import JoinMismatch, OrganismAnnotations, RunReport


@pytest.fixture
def annotations(tmp_path) -> OrganismAnnotations:
    organism = OrganismConfig(
        name="Leishmania major strain Friedlin",
        genus="Leishmania",
        species="major",
        tax_id=347515,
        gff=tmp_path / "Lmajor.gff",
    )
    report = RunReport(organism=organism.name)
    report.stage_sources["go"] = "computed"
    report.join_mismatches.append(JoinMismatch("go", 1, ["LmjF.99.9999"]))
    report.unmapped["kegg"] = ["lma:M00359"]

    tables = {
        "gene_info": pl.DataFrame({
            "GID": ["LmjF.01.0020", "LmjF.01.0010"],
            "GENEDESCRIPTION": ["kinesin", None],
        }),
        "go": pl.DataFrame({
            "EVIDENCE": ["IDA", "IEA"],
            "GID": ["LmjF.01.0010", "LmjF.01.0010"],
            "GO": ["GO:0005737", "GO:0005737"],
        }),
        "kegg": pl.DataFrame(schema={
            "GID": pl.Utf8, "KEGG_PATH": pl.Utf8, "KEGG_NAME": pl.Utf8,
            "KEGG_CLASS": pl.Utf8, "KEGG_DESCRIPTION": pl.Utf8,
        }),
    }
    return OrganismAnnotations(organism=organism, tables=tables, report=report)


def test_writes_tsv_per_table(annotations, tmp_path):
    paths = write_annotation_tables(annotations, tmp_path / "output")

    organism_dir = tmp_path / "output" / "leishmania_major_strain_friedlin"
    assert paths["tables"]["go"]["tsv"] == organism_dir / "go.tsv"
    for name in ("gene_info", "go", "kegg"):
        assert (organism_dir / f"{name}.tsv").exists()


def test_gid_first_and_sorted(annotations, tmp_path):
    paths = write_annotation_tables(annotations, tmp_path / "output")

    go = pl.read_csv(paths["tables"]["go"]["tsv"], separator="\t")
    assert go.columns == ["GID", "EVIDENCE", "GO"]

    gene_info = pl.read_csv(paths["tables"]["gene_info"]["tsv"], separator="\t")
    assert gene_info.get_column("GID").to_list() == ["LmjF.01.0010", "LmjF.01.0020"]


def test_empty_table_keeps_header(annotations, tmp_path):
    paths = write_annotation_tables(annotations, tmp_path / "output")

    header = Path(paths["tables"]["kegg"]["tsv"]).read_text().splitlines()[0]
    assert header.split("\t") == ["GID", "KEGG_PATH", "KEGG_NAME", "KEGG_CLASS", "KEGG_DESCRIPTION"]


def test_parquet_optional(annotations, tmp_path):
    without = write_annotation_tables(annotations, tmp_path / "a")
    assert "parquet" not in without["tables"]["go"]

    with_parquet = write_annotation_tables(annotations, tmp_path / "b", parquet=True)
    parquet_path = with_parquet["tables"]["go"]["parquet"]
    assert pl.read_parquet(parquet_path).height == 2


def test_provenance_sidecar(annotations, tmp_path):
    paths = write_annotation_tables(annotations, tmp_path / "output")

    with open(paths["provenance"]) as f:
        metadata = yaml.safe_load(f)

    assert metadata["organism"]["kegg_code"] == "lma"
    assert metadata["organism"]["tax_id"] == 347515
    assert metadata["statistics"]["go"] == {
        "rows": 2,
        "genes": 1,
        "columns": ["GID", "EVIDENCE", "GO"],
    }
    assert "go.tsv" in metadata["output_files"]
    assert metadata["run_report"]["join_mismatches"][0]["table"] == "go"
    assert metadata["run_report"]["unmapped"] == {"kegg": 1}
    assert "generated_at" in metadata


def test_write_unmapped_ids(annotations, tmp_path):
    written = write_unmapped_ids(annotations, tmp_path / "output")

    assert [p.name for p in written] == ["kegg.unmapped.txt"]
    assert written[0].read_text().splitlines()[-1] == "lma:M00359"
