"""CLI tests using click's CliRunner."""

from unittest.mock import patch

import polars as pl
import pytest
from click.testing import CliRunner

from eupath_orgdb.cli.main import cli
from eupath_orgdb.evidence.kegg import KEGGFetchResult

GFF = (
    "##gff-version 3\n"
    "LmjF.01\tEuPathDB\tgene\t3704\t10348\t.\t-\t.\tID=LmjF.01.0010\n"
    "LmjF.11\tEuPathDB\tgene\t500\t2000\t.\t+\t.\tID=LmjF.11.0100\n"
)

REPORT = (
    "Gene ID: LmjF.01.0010\n"
    "Gene Type: protein coding\n"
    "GO:0005737\tCellular Component\tcytoplasm\tinterpro\tIEA\n"
    "GO:0016020\tCellular Component\n"
)


@pytest.fixture
def test_config(tmp_path):
    """Create a config YAML with local input files."""
    (tmp_path / "Lmajor.gff").write_text(GFF)
    (tmp_path / "Lmajor_Gene.txt").write_text(REPORT)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"""
data_dir: {tmp_path / "data"}
cache_dir: {tmp_path / "cache"}
duckdb_path: {tmp_path / "annotations.duckdb"}
output_dir: {tmp_path / "output"}
versions:
  eupathdb_release: 68
organisms:
  - name: Leishmania major strain Friedlin
    genus: Leishmania
    species: major
    gff: {tmp_path / "Lmajor.gff"}
    gene_report: {tmp_path / "Lmajor_Gene.txt"}
""")
    return config_path


@pytest.fixture
def mock_kegg():
    result = KEGGFetchResult(
        membership=pl.DataFrame({
            "KEGG_ID": ["lma:LMJF_11_0100"],
            "KEGG_PATH": ["path:lma00010"],
        }),
        pathways=pl.DataFrame({
            "KEGG_PATH": ["path:lma00010"],
            "KEGG_NAME": ["Glycolysis / Gluconeogenesis"],
            "KEGG_CLASS": [""],
            "KEGG_DESCRIPTION": [""],
        }),
    )
    with patch("eupath_orgdb.pipeline.orchestrator.fetch_kegg_pathways", return_value=result):
        yield


def test_info(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "info"])

    assert result.exit_code == 0
    assert "EuPathDB Release: 68" in result.output
    assert "Leishmania major strain Friedlin" in result.output
    assert "KEGG: lma" in result.output


def test_build_help(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build", "--help"])

    assert result.exit_code == 0
    for option in ("--organism", "--force", "--strict", "--parquet", "--output-dir"):
        assert option in result.output


def test_build_writes_tables(test_config, tmp_path, mock_kegg):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build"])

    assert result.exit_code == 0, result.output
    organism_dir = tmp_path / "output" / "leishmania_major_strain_friedlin"
    assert (organism_dir / "go.tsv").exists()
    assert (organism_dir / "kegg.tsv").exists()
    assert (organism_dir / "leishmania_major_strain_friedlin.provenance.yaml").exists()
    assert (tmp_path / "output" / "build.provenance.json").exists()
    assert "MALFORMED: 1 lines dropped" in result.output
    assert "Built: 1" in result.output


def test_build_selected_organism_by_kegg_code(test_config, mock_kegg):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build", "--organism", "lma"])

    assert result.exit_code == 0, result.output


def test_build_unknown_organism(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build", "--organism", "hsa"])

    assert result.exit_code == 1
    assert "Unknown organism: hsa" in result.output


def test_build_strict_fails_on_malformed_line(test_config, mock_kegg):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build", "--strict"])

    # The report's malformed GO line degrades the report tables in strict mode
    assert result.exit_code == 0, result.output
    assert "DEGRADED go" in result.output


def test_build_missing_gff_exits_nonzero(test_config, tmp_path, mock_kegg):
    (tmp_path / "Lmajor.gff").unlink()

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "build"])

    assert result.exit_code == 1
    assert "Build failed" in result.output
