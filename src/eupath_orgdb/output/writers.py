"""TSV (optionally Parquet) table writer with provenance sidecar."""

from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import yaml

from eupath_orgdb.pipeline.orchestrator import OrganismAnnotations
from eupath_orgdb.persistence.provenance import ProvenanceTracker


def write_annotation_tables(
    annotations: OrganismAnnotations,
    output_dir: Path,
    parquet: bool = False,
    provenance: ProvenanceTracker | None = None,
) -> dict:
    """
    Write an organism's annotation tables with a provenance sidecar.

    Each table is written to ``<output_dir>/<organism slug>/<table>.tsv``
    with GID as the first column, sorted by GID for reproducible output.

    Args:
        annotations: Assembled tables and run report of one organism
        output_dir: Base output directory (created if it doesn't exist)
        parquet: Also write each table as Parquet
        provenance: ProvenanceTracker whose metadata is embedded in the sidecar

    Returns:
        Dictionary with output file paths:
        {
            "tables": {table name: {"tsv": Path, "parquet": Path (if written)}},
            "provenance": Path to YAML provenance sidecar
        }
    """
    slug = annotations.organism.slug()
    organism_dir = Path(output_dir) / slug
    organism_dir.mkdir(parents=True, exist_ok=True)

    paths: dict[str, dict[str, Path]] = {}
    statistics = {}

    for name, df in annotations.tables.items():
        df = df.select(["GID", *[c for c in df.columns if c != "GID"]])
        df = df.sort("GID", maintain_order=True)

        tsv_path = organism_dir / f"{name}.tsv"
        df.write_csv(tsv_path, separator="\t", include_header=True)
        paths[name] = {"tsv": tsv_path}

        if parquet:
            parquet_path = organism_dir / f"{name}.parquet"
            df.write_parquet(parquet_path, compression="snappy")
            paths[name]["parquet"] = parquet_path

        statistics[name] = {
            "rows": df.height,
            "genes": df.get_column("GID").n_unique(),
            "columns": df.columns,
        }

    provenance_path = organism_dir / f"{slug}.provenance.yaml"
    metadata = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "organism": {
            "name": annotations.organism.name,
            "genus": annotations.organism.genus,
            "species": annotations.organism.species,
            "kegg_code": annotations.organism.kegg_abbreviation(),
            "tax_id": annotations.organism.tax_id,
        },
        "output_files": sorted(p.name for files in paths.values() for p in files.values()),
        "statistics": statistics,
        "run_report": annotations.report.to_dict(),
    }
    if provenance is not None:
        metadata["provenance"] = provenance.create_metadata()

    with open(provenance_path, "w") as f:
        yaml.safe_dump(metadata, f, default_flow_style=False, sort_keys=False)

    return {"tables": paths, "provenance": provenance_path}


def write_unmapped_ids(annotations: OrganismAnnotations, output_dir: Path) -> list[Path]:
    """Write one file of unmapped foreign identifiers per table, for manual review."""
    organism_dir = Path(output_dir) / annotations.organism.slug()
    written = []
    for table, identifiers in annotations.report.unmapped.items():
        path = organism_dir / f"{table}.unmapped.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(f"# Unmapped {table} identifiers: {len(identifiers)}\n")
            for identifier in identifiers:
                f.write(f"{identifier}\n")
        written.append(path)
    return written
