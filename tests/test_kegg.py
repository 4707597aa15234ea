"""Tests for the KEGG client, concurrent pathway fetch and KEGG table build."""

import threading
from unittest.mock import MagicMock

import polars as pl
import pytest
import requests

from eupath_orgdb.api_clients.kegg import (
    KEGGClient,
    parse_flat_entry,
    parse_link_response,
    pathway_from_entry,
)
from eupath_orgdb.errors import FetchError
from eupath_orgdb.evidence.kegg import (
    PathwayRecord,
    build_kegg_table,
    fetch_kegg_pathways,
    normalize_kegg_membership,
)
from eupath_orgdb.gene_mapping import IdentifierNormalizer

PATHWAY_ENTRY = """ENTRY       lma00010                    Pathway
NAME        Glycolysis / Gluconeogenesis - Leishmania major
DESCRIPTION Glycolysis is the process of converting glucose into pyruvate
            and generating small amounts of ATP.
CLASS       Metabolism; Carbohydrate metabolism
PATHWAY_MAP lma00010  Glycolysis / Gluconeogenesis
ORGANISM    Leishmania major [GN:lma]
GENE        LMJF_10_0510  hexokinase
///
"""


class FakeKEGGClient:
    """In-memory stand-in for KEGGClient."""

    def __init__(self, pathways, genes, failing=()):
        self.pathways = pathways
        self.genes = genes
        self.failing = set(failing)

    def list_pathways(self, organism_code):
        return list(self.pathways)

    def get_pathway(self, pathway_id):
        if pathway_id in self.failing:
            raise FetchError(f"Empty KEGG entry for {pathway_id}")
        return PathwayRecord(pathway=pathway_id, name=f"name of {pathway_id}")

    def pathway_genes(self, organism_code, pathway_id):
        return list(self.genes.get(pathway_id, []))


def test_parse_link_response():
    text = "lma:LMJF_10_0510\tpath:lma00010\nlma:LMJF_11_0100\tpath:lma00010\n\nbroken line\n"

    assert parse_link_response(text) == [
        ("lma:LMJF_10_0510", "path:lma00010"),
        ("lma:LMJF_11_0100", "path:lma00010"),
    ]


def test_parse_flat_entry_continuation_lines():
    entry = parse_flat_entry(PATHWAY_ENTRY)

    assert entry["DESCRIPTION"] == [
        "Glycolysis is the process of converting glucose into pyruvate",
        "and generating small amounts of ATP.",
    ]
    assert entry["CLASS"] == ["Metabolism; Carbohydrate metabolism"]


def test_pathway_from_entry_uses_pathway_map_name():
    record = pathway_from_entry("path:lma00010", parse_flat_entry(PATHWAY_ENTRY))

    assert record.name == "Glycolysis / Gluconeogenesis"
    assert record.pathway_class == "Metabolism; Carbohydrate metabolism"
    assert record.description.endswith("small amounts of ATP.")


def test_pathway_from_entry_falls_back_to_name():
    record = pathway_from_entry("path:x", {"NAME": ["Some pathway"]})
    assert record.name == "Some pathway"


def test_kegg_client_requests():
    api = MagicMock()
    api.get_text.side_effect = [
        "lma:LMJF_10_0510\tpath:lma00010\nlma:LMJF_11_0100\tpath:lma00010\n"
        "lma:LMJF_11_0100\tpath:lma00020\n",
        PATHWAY_ENTRY,
        "path:lma00010\tlma:LMJF_10_0510\n",
    ]
    client = KEGGClient(api, base_url="https://rest.kegg.jp/")

    assert client.list_pathways("lma") == ["path:lma00010", "path:lma00020"]
    assert client.get_pathway("path:lma00010").name == "Glycolysis / Gluconeogenesis"
    assert client.pathway_genes("lma", "path:lma00010") == ["lma:LMJF_10_0510"]

    urls = [call.args[0] for call in api.get_text.call_args_list]
    assert urls == [
        "https://rest.kegg.jp/link/pathway/lma",
        "https://rest.kegg.jp/get/path:lma00010",
        "https://rest.kegg.jp/link/lma/path:lma00010",
    ]


def test_kegg_client_wraps_request_errors():
    api = MagicMock()
    api.get_text.side_effect = requests.exceptions.ConnectionError("down")
    client = KEGGClient(api)

    with pytest.raises(FetchError) as exc_info:
        client.list_pathways("lma")

    assert exc_info.value.organism == "lma"
    assert exc_info.value.url == "https://rest.kegg.jp/link/pathway/lma"


def test_kegg_client_empty_entry():
    api = MagicMock()
    api.get_text.return_value = ""

    with pytest.raises(FetchError):
        KEGGClient(api).get_pathway("path:lma99999")


def test_fetch_kegg_pathways_merges_slots():
    client = FakeKEGGClient(
        pathways=["path:lma00010", "path:lma00020"],
        genes={
            "path:lma00010": ["lma:LMJF_10_0510", "lma:LMJF_11_0100"],
            "path:lma00020": ["lma:LMJF_11_0100"],
        },
    )

    result = fetch_kegg_pathways(client, "lma", max_workers=2)

    assert result.failures == {}
    assert result.membership.height == 3
    assert sorted(result.pathways.get_column("KEGG_PATH").to_list()) == [
        "path:lma00010",
        "path:lma00020",
    ]


def test_fetch_kegg_pathways_records_failures():
    client = FakeKEGGClient(
        pathways=["path:lma00010", "path:lma00020"],
        genes={"path:lma00010": ["lma:LMJF_10_0510"], "path:lma00020": ["lma:LMJF_11_0100"]},
        failing=["path:lma00020"],
    )

    result = fetch_kegg_pathways(client, "lma", max_workers=2)

    assert list(result.failures) == ["path:lma00020"]
    assert result.membership.get_column("KEGG_PATH").to_list() == ["path:lma00010"]


def test_fetch_kegg_pathways_interrupt_becomes_fetch_error():
    client = FakeKEGGClient(pathways=["path:lma00010"], genes={})
    client.get_pathway = MagicMock(side_effect=KeyboardInterrupt)

    with pytest.raises(FetchError) as exc_info:
        fetch_kegg_pathways(client, "lma", max_workers=1)

    assert "interrupted" in str(exc_info.value)


def test_fetch_kegg_pathways_unexpected_error_cancels_queued_tasks():
    pathways = [f"path:lma0001{i}" for i in range(5)]
    client = FakeKEGGClient(pathways=pathways, genes={})
    release = threading.Event()
    started = []

    def get_pathway(pathway_id):
        started.append(pathway_id)
        if len(started) == 1:
            raise RuntimeError("bad payload")
        release.wait(timeout=5)
        return PathwayRecord(pathway=pathway_id)

    client.get_pathway = get_pathway

    with pytest.raises(RuntimeError):
        fetch_kegg_pathways(client, "lma", max_workers=1)
    release.set()

    # The single worker was busy with at most one more task; the rest were cancelled
    assert len(started) <= 2


def test_normalize_and_build_kegg_table():
    membership = pl.DataFrame({
        "KEGG_ID": ["lma:LMJF_10_0510", "lma:LMJF_11_0100", "lma:M00359"],
        "KEGG_PATH": ["path:lma00010", "path:lma00010", "path:lma00010"],
    })
    pathways = pl.DataFrame({
        "KEGG_PATH": ["path:lma00010"],
        "KEGG_NAME": ["Glycolysis / Gluconeogenesis"],
        "KEGG_CLASS": ["Metabolism; Carbohydrate metabolism"],
        "KEGG_DESCRIPTION": ["Glycolysis is the process"],
    })

    gene_pathways, report = normalize_kegg_membership(membership, IdentifierNormalizer())
    table = build_kegg_table(gene_pathways, pathways)

    assert report.unmapped_ids == ["lma:M00359"]
    assert table.columns == ["GID", "KEGG_PATH", "KEGG_NAME", "KEGG_CLASS", "KEGG_DESCRIPTION"]
    assert sorted(table.get_column("GID").to_list()) == ["LmjF.10.0510", "LmjF.11.0100"]
    assert set(table.get_column("KEGG_NAME").to_list()) == {"Glycolysis / Gluconeogenesis"}


def test_build_kegg_table_missing_metadata():
    gene_pathways = pl.DataFrame({"GID": ["TcCLB.509463.30"], "KEGG_PATH": ["path:tcr00010"]})
    pathways = pl.DataFrame(schema={
        "KEGG_PATH": pl.Utf8, "KEGG_NAME": pl.Utf8,
        "KEGG_CLASS": pl.Utf8, "KEGG_DESCRIPTION": pl.Utf8,
    })

    table = build_kegg_table(gene_pathways, pathways)

    assert table.row(0, named=True) == {
        "GID": "TcCLB.509463.30",
        "KEGG_PATH": "path:tcr00010",
        "KEGG_NAME": "",
        "KEGG_CLASS": "",
        "KEGG_DESCRIPTION": "",
    }


def test_empty_membership():
    membership = pl.DataFrame(schema={"KEGG_ID": pl.Utf8, "KEGG_PATH": pl.Utf8})

    gene_pathways, report = normalize_kegg_membership(membership, IdentifierNormalizer())

    assert gene_pathways.columns == ["GID", "KEGG_PATH"]
    assert gene_pathways.height == 0
    assert report.total == 0
