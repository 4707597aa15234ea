"""Pydantic models for pipeline configuration."""

import hashlib
import json
import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# KEGG organism codes that differ from the genus/species abbreviation
KEGG_CODE_OVERRIDES = {
    "lbr": "lbz",
}


class DataSourceVersions(BaseModel):
    """Version information for external data sources."""

    eupathdb_release: int = Field(
        ...,
        ge=1,
        description="EuPathDB release number the inputs were taken from",
    )
    kegg_release: str | None = Field(
        default=None,
        description="KEGG release label (informational, part of cache keys)",
    )


class APIConfig(BaseModel):
    """Configuration for API clients."""

    rate_limit_per_second: int = Field(
        default=5,
        ge=1,
        description="Maximum API requests per second",
    )
    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum retry attempts for failed requests",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="Cache time-to-live in seconds (0 = infinite)",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Request timeout in seconds",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Worker threads for concurrent pathway fetches",
    )


class ProviderConfig(BaseModel):
    """Remote data provider locations."""

    eupathdb_url: str = Field(
        default="https://tritrypdb.org/tritrypdb",
        description="Base URL of the EuPathDB site (e.g. TriTrypDB)",
    )
    gene_service: str = Field(
        default="webservices/GeneQuestions/GenesByTaxonGene.json",
        description="Gene and annotation-table query service path",
    )
    gene_type_service: str = Field(
        default="webservices/GeneQuestions/GenesByTaxon.json",
        description="Gene field query service path",
    )
    kegg_url: str = Field(
        default="https://rest.kegg.jp",
        description="KEGG REST API base URL",
    )

    @field_validator("eupathdb_url", "kegg_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class OrganismConfig(BaseModel):
    """Identity and input locations for a single organism."""

    name: str = Field(
        ...,
        description="Full organism name as used by EuPathDB "
        "(e.g. 'Leishmania major strain Friedlin')",
    )
    genus: str
    species: str
    kegg_code: str | None = Field(
        default=None,
        description="KEGG organism code; derived from genus/species if unset",
    )
    tax_id: int | None = None
    gff: Path = Field(..., description="GFF3 genome annotation (primary source)")
    gff_url: str | None = Field(
        default=None,
        description="Download location used when the GFF file is absent",
    )
    gene_report: Path | None = Field(
        default=None,
        description="EuPathDB flat-file gene report (optionally gzipped)",
    )
    gene_report_url: str | None = None
    aliases: Path | None = Field(
        default=None,
        description="Tab-delimited alias file: canonical ID, then alternate IDs",
    )
    alias_columns: list[int] | None = Field(
        default=None,
        description="0-based alias file columns holding foreign IDs (default: all but the first)",
    )
    alias_pattern: str | None = Field(
        default=None,
        description="Regex an alias value must match to be loaded",
    )
    go_sources: list[Literal["report", "remote"]] = Field(
        default_factory=lambda: ["report"],
        description="Where GO annotations are taken from",
    )
    gene_type_source: Literal["report", "remote", "none"] = "report"
    kegg: bool = Field(default=True, description="Build KEGG pathway tables")

    @field_validator("alias_columns")
    @classmethod
    def check_alias_columns(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(col < 1 for col in v):
            raise ValueError("alias_columns must be >= 1 (column 0 is the canonical ID)")
        return v

    @field_validator("alias_pattern")
    @classmethod
    def check_alias_pattern(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid alias_pattern: {e}") from e
        return v

    def kegg_abbreviation(self) -> str:
        """Return the KEGG organism code (e.g. 'lma' for Leishmania major)."""
        if self.kegg_code:
            return self.kegg_code
        code = (self.genus[:1] + self.species[:2]).lower()
        return KEGG_CODE_OVERRIDES.get(code, code)

    def slug(self) -> str:
        """Identifier-safe short name used for table and file names."""
        return re.sub(r"[^0-9a-zA-Z]+", "_", self.name).strip("_").lower()


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for storing downloaded data",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory for API response caching",
    )
    duckdb_path: Path = Field(
        ...,
        description="Path to DuckDB database file",
    )
    output_dir: Path = Field(
        default=Path("output"),
        description="Directory for emitted annotation tables",
    )
    versions: DataSourceVersions = Field(
        ...,
        description="Data source version information",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="API client configuration",
    )
    provider: ProviderConfig = Field(
        default_factory=ProviderConfig,
        description="Remote provider locations",
    )
    go_obo: Path | None = Field(
        default=None,
        description="GO ontology (OBO) used for synonym resolution",
    )
    go_obo_url: str | None = Field(
        default=None,
        description="Download location used when the OBO file is absent",
    )
    strict_parsing: bool = Field(
        default=False,
        description="Raise on the first malformed input line instead of reporting it",
    )
    organisms: list[OrganismConfig] = Field(
        ...,
        min_length=1,
        description="Organisms to build annotation tables for",
    )

    @field_validator("data_dir", "cache_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def get_organism(self, key: str) -> OrganismConfig:
        """Look up an organism by full name, slug or KEGG code."""
        for organism in self.organisms:
            if key in (organism.name, organism.slug(), organism.kegg_abbreviation()):
                return organism
        raise KeyError(f"Unknown organism: {key}")

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking config changes and cache invalidation.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
