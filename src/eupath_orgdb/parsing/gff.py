"""GFF3 gene model parsing.

Only ``gene`` features and their attribute column are consumed; they form
the primary gene set every other annotation table is joined against.
"""

from pathlib import Path
from urllib.parse import unquote

import polars as pl
import structlog
from pydantic import BaseModel, ConfigDict

from eupath_orgdb.errors import MissingPrimarySource, ParseError
from eupath_orgdb.parsing.report import open_report

logger = structlog.get_logger()

GFF_COLUMN_COUNT = 9
GENE_FEATURE_TYPE = "gene"
GENE_TYPE_ATTRIBUTES = ("gene_type", "ebi_biotype", "biotype")

CHROMOSOME_SCHEMA = {"GID": pl.Utf8, "CHR": pl.Utf8}


class GeneRecord(BaseModel):
    """A gene feature from the GFF3 file.

    Attributes:
        gid: Canonical gene ID (GFF ``ID`` attribute)
        chromosome: Sequence the gene is located on
        start: 1-based start coordinate
        end: 1-based inclusive end coordinate
        strand: '+', '-' or '.'
        description: Decoded description attribute, if any
        aliases: Alternate identifiers from the ``Alias`` attribute
        gene_type: Biotype attribute, if the GFF carries one
        attributes: All decoded attributes, keyed as in the file
    """

    model_config = ConfigDict(frozen=True)

    gid: str
    chromosome: str
    start: int
    end: int
    strand: str = "."
    description: str | None = None
    aliases: tuple[str, ...] = ()
    gene_type: str | None = None
    attributes: dict[str, str] = {}


def parse_attributes(column: str) -> dict[str, str]:
    """Decode a GFF3 attribute column (``key=value;key=value``)."""
    attributes = {}
    for item in column.strip().split(";"):
        if not item or "=" not in item:
            continue
        key, value = item.split("=", 1)
        key = key.strip()
        if key == "description":
            # Descriptions are form-encoded on EuPathDB
            value = value.replace("+", " ")
        attributes[key] = unquote(value.strip())
    return attributes


def parse_gff_genes(path: Path | str, strict: bool = False) -> list[GeneRecord]:
    """Parse gene features from a GFF3 file (plain or gzipped).

    Args:
        path: GFF3 file location
        strict: If True, raise on the first malformed gene line

    Returns:
        GeneRecords in file order, unique by GID

    Raises:
        MissingPrimarySource: If the file is absent or holds no gene features
        ParseError: On a malformed gene line when strict is True
    """
    path = Path(path)
    if not path.exists():
        raise MissingPrimarySource(f"GFF file not found: {path}")

    logger.info("gff_parse_start", path=str(path))

    records: list[GeneRecord] = []
    seen: set[str] = set()
    skipped = 0

    with open_report(path) as fp:
        for line_number, line in enumerate(fp, start=1):
            if line.startswith("##FASTA"):
                break
            if not line.strip() or line.startswith("#"):
                continue

            fields = line.rstrip("\r\n").split("\t")
            if len(fields) > 2 and fields[2] != GENE_FEATURE_TYPE:
                continue

            try:
                if len(fields) != GFF_COLUMN_COUNT:
                    raise ParseError(
                        f"gene line has {len(fields)} columns, expected {GFF_COLUMN_COUNT}",
                        source=path, line_number=line_number, line=line.rstrip("\r\n"),
                    )
                attributes = parse_attributes(fields[8])
                gid = attributes.get("ID")
                if not gid:
                    raise ParseError(
                        "gene feature without an ID attribute",
                        source=path, line_number=line_number, line=line.rstrip("\r\n"),
                    )
                if gid in seen:
                    raise ParseError(
                        f"duplicate gene ID {gid}",
                        source=path, line_number=line_number, line=line.rstrip("\r\n"),
                    )
                record = GeneRecord(
                    gid=gid,
                    chromosome=fields[0],
                    start=int(fields[3]),
                    end=int(fields[4]),
                    strand=fields[6],
                    description=attributes.get("description"),
                    aliases=tuple(
                        a for a in attributes.get("Alias", "").split(",") if a
                    ),
                    gene_type=next(
                        (attributes[k] for k in GENE_TYPE_ATTRIBUTES if k in attributes),
                        None,
                    ),
                    attributes=attributes,
                )
            except ValueError as e:
                # Non-integer start/end
                error = ParseError(
                    f"invalid coordinates: {e}",
                    source=path, line_number=line_number, line=line.rstrip("\r\n"),
                )
                if strict:
                    raise error from e
                logger.warning("gff_malformed_line", error=str(error))
                skipped += 1
                continue
            except ParseError as error:
                if strict:
                    raise
                logger.warning("gff_malformed_line", error=str(error))
                skipped += 1
                continue

            seen.add(gid)
            records.append(record)

    if not records:
        raise MissingPrimarySource(f"No gene features found in {path}")

    logger.info("gff_parse_complete", path=str(path), genes=len(records), skipped=skipped)
    return records


def gene_info_table(records: list[GeneRecord]) -> pl.DataFrame:
    """Build the gene information table from GFF attributes.

    Columns are GID followed by ``GENE<ATTRIBUTE>`` for every attribute seen
    (upper-cased, first-seen order). Aliases are comma-joined. Missing values
    are null.
    """
    columns: list[str] = []
    for record in records:
        for key in record.attributes:
            if key != "ID" and key not in columns:
                columns.append(key)

    data: dict[str, list] = {"GID": [r.gid for r in records]}
    for key in columns:
        name = "GENE" + key.upper()
        if key == "Alias":
            data[name] = [",".join(r.aliases) if r.aliases else None for r in records]
        else:
            data[name] = [r.attributes.get(key) for r in records]

    schema = {name: pl.Utf8 for name in data}
    return pl.DataFrame(data, schema=schema)


def chromosome_table(records: list[GeneRecord]) -> pl.DataFrame:
    """Build the (GID, CHR) table."""
    return pl.DataFrame(
        {"GID": [r.gid for r in records], "CHR": [r.chromosome for r in records]},
        schema=CHROMOSOME_SCHEMA,
    )
