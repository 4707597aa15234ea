"""Build the annotation tables of one or more organisms.

The GFF gene set is the primary table: every other table is reduced to the
GIDs it contains. Each stage result is checkpointed in DuckDB under
``<organism slug>_<stage>`` together with a fingerprint of its inputs, and
reused on the next run when the fingerprint is unchanged.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx
import polars as pl
import structlog

from eupath_orgdb.api_clients.base import CachedAPIClient
from eupath_orgdb.api_clients.download import download_source
from eupath_orgdb.api_clients.eupathdb import EuPathDBClient
from eupath_orgdb.api_clients.kegg import KEGGClient
from eupath_orgdb.config.schema import OrganismConfig, PipelineConfig
from eupath_orgdb.errors import FetchError, MissingPrimarySource, ParseError
from eupath_orgdb.evidence.go import (
    GO_SCHEMA,
    fetch_gene_types,
    fetch_go_terms,
    load_obo,
    process_go_evidence,
)
from eupath_orgdb.evidence.kegg import (
    KEGG_SCHEMA,
    MEMBERSHIP_SCHEMA,
    PATHWAY_SCHEMA,
    build_kegg_table,
    fetch_kegg_pathways,
    normalize_kegg_membership,
)
from eupath_orgdb.gene_mapping import (
    AliasTable,
    IdentifierNormalizer,
    MappingValidator,
)
from eupath_orgdb.parsing.gff import (
    chromosome_table,
    gene_info_table,
    parse_gff_genes,
)
from eupath_orgdb.parsing.report import (
    GENE_TYPE_SCHEMA,
    INTERPRO_SCHEMA,
    ReportTables,
    parse_gene_report,
)
from eupath_orgdb.persistence import (
    PipelineStore,
    ProvenanceTracker,
    file_fingerprint,
    stage_fingerprint,
)
from eupath_orgdb.pipeline.report import MAX_EXAMPLES, JoinMismatch, RunReport

logger = structlog.get_logger()

# Failures that empty a secondary table instead of halting the run
RECOVERABLE_ERRORS = (FetchError, ParseError, FileNotFoundError)

# Output tables in emission order; gene_info is the primary table
OUTPUT_TABLES = ("gene_info", "chromosome", "gene_type", "go", "interpro", "kegg")


@dataclass
class OrganismAnnotations:
    """Assembled tables for one organism.

    Attributes:
        organism: OrganismConfig the tables were built for
        tables: table name -> DataFrame, GID first, in OUTPUT_TABLES order
        report: Warnings collected during the build
    """
    organism: OrganismConfig
    tables: dict[str, pl.DataFrame]
    report: RunReport

    @property
    def gene_ids(self) -> set[str]:
        return set(self.tables["gene_info"].get_column("GID").to_list())


@dataclass
class BatchResult:
    """Outcome of run_batch: built organisms plus per-organism fetch failures."""
    results: list[OrganismAnnotations]
    failures: dict[str, FetchError]


def semi_join_primary(
    df: pl.DataFrame,
    primary_gids: pl.Series,
    table: str,
) -> tuple[pl.DataFrame, JoinMismatch | None]:
    """Keep only rows whose GID is in the primary gene set.

    Returns:
        Tuple of (filtered DataFrame, JoinMismatch if any rows were dropped)
    """
    keep = pl.col("GID").is_in(primary_gids.to_list())
    kept = df.filter(keep)
    dropped = df.height - kept.height
    if dropped == 0:
        return kept, None

    examples = (
        df.filter(~keep).get_column("GID").unique(maintain_order=True)
        .head(MAX_EXAMPLES).to_list()
    )
    return kept, JoinMismatch(table=table, dropped=dropped, examples=examples)


class MergeOrchestrator:
    """Runs every stage for an organism and assembles the output tables."""

    def __init__(
        self,
        config: PipelineConfig,
        store: PipelineStore,
        provenance: ProvenanceTracker | None = None,
        api: CachedAPIClient | None = None,
        force: bool = False,
    ):
        self.config = config
        self.store = store
        self.provenance = provenance or ProvenanceTracker.from_config(config)
        self.force = force
        self._api = api
        self._eupathdb: EuPathDBClient | None = None
        self._kegg: KEGGClient | None = None

    @property
    def api(self) -> CachedAPIClient:
        if self._api is None:
            self._api = CachedAPIClient.from_config(self.config)
        return self._api

    @property
    def eupathdb(self) -> EuPathDBClient:
        if self._eupathdb is None:
            self._eupathdb = EuPathDBClient.from_config(self.config, api=self.api)
        return self._eupathdb

    @property
    def kegg(self) -> KEGGClient:
        if self._kegg is None:
            self._kegg = KEGGClient.from_config(self.config, api=self.api)
        return self._kegg

    # -- inputs ---------------------------------------------------------

    def _ensure_local(self, path: Path, url: str | None) -> Path:
        """Return path, downloading it from url first if it is absent."""
        if path.exists() or url is None:
            return path
        try:
            return download_source(url, path)
        except httpx.HTTPError as e:
            raise FetchError(f"Download of {url} failed: {e}", url=url) from e

    def _remote_identity(self, organism: OrganismConfig, query: str) -> dict:
        return {
            "organism": organism.name,
            "query": query,
            "provider": self.config.provider.model_dump(),
            "versions": self.config.versions.model_dump(),
        }

    # -- stage caching --------------------------------------------------

    def _cached_stage(
        self,
        organism: OrganismConfig,
        stage: str,
        inputs: Callable[[], dict],
        compute: Callable[[], tuple[pl.DataFrame, bool]],
        report: RunReport,
        schema: dict | None = None,
    ) -> pl.DataFrame:
        """Load a stage from the store or compute and checkpoint it.

        Args:
            organism: Organism being built
            stage: Stage name
            inputs: Returns the fingerprint inputs (may raise for missing files)
            compute: Returns (DataFrame, complete); incomplete results are
                used for this run but not checkpointed
            report: RunReport to record the stage outcome in
            schema: Empty-table schema for secondary stages. When None the
                stage is primary and errors propagate.

        Returns:
            Stage DataFrame
        """
        table = f"{organism.slug()}_{stage}"
        try:
            fingerprint = stage_fingerprint(stage, inputs())

            if not self.force and self.store.has_checkpoint(table, fingerprint):
                df = self.store.load_dataframe(table)
                if df is not None:
                    logger.info("stage_cached", table=table, rows=df.height)
                    report.stage_sources[stage] = "cached"
                    self.provenance.record_step(
                        table, {"source": "cached", "rows": df.height}
                    )
                    return df

            logger.info("stage_compute_start", table=table)
            df, complete = compute()
        except RECOVERABLE_ERRORS as e:
            if schema is None:
                raise
            logger.warning("stage_degraded", table=table, error=str(e))
            report.stage_sources[stage] = "degraded"
            report.degrade(stage, str(e))
            self.provenance.record_step(table, {"source": "degraded", "error": str(e)})
            return pl.DataFrame(schema=schema)

        if complete:
            self.store.save_dataframe(
                df, table, fingerprint=fingerprint, description=f"{organism.name} {stage}"
            )
            report.stage_sources[stage] = "computed"
        else:
            report.stage_sources[stage] = "partial"

        self.provenance.record_step(
            table,
            {"source": report.stage_sources[stage], "rows": df.height, "fingerprint": fingerprint},
        )
        logger.info("stage_compute_complete", table=table, rows=df.height, complete=complete)
        return df

    def _skip(self, stage: str, report: RunReport, schema: dict) -> pl.DataFrame:
        report.stage_sources[stage] = "skipped"
        return pl.DataFrame(schema=schema)

    # -- stages ---------------------------------------------------------

    def _primary_stages(
        self, organism: OrganismConfig, report: RunReport
    ) -> tuple[pl.DataFrame, pl.DataFrame]:
        gff = organism.gff
        records = None

        def inputs() -> dict:
            path = self._ensure_local(gff, organism.gff_url)
            if not path.exists():
                raise MissingPrimarySource(f"GFF file not found: {path}")
            return {"gff": file_fingerprint(path), "strict": self.config.strict_parsing}

        def genes():
            nonlocal records
            if records is None:
                records = parse_gff_genes(gff, strict=self.config.strict_parsing)
            return records

        gene_info = self._cached_stage(
            organism, "gene_info", inputs,
            lambda: (gene_info_table(genes()), True),
            report,
        )
        chromosome = self._cached_stage(
            organism, "chromosome", inputs,
            lambda: (chromosome_table(genes()), True),
            report,
        )

        if gene_info.height == 0:
            raise MissingPrimarySource(f"No gene features found in {gff}")
        return gene_info, chromosome

    def _report_loader(
        self, organism: OrganismConfig, report: RunReport
    ) -> Callable[[], ReportTables]:
        """Return a memoized parser for the organism's gene report."""
        parsed: list[ReportTables] = []

        def load() -> ReportTables:
            if not parsed:
                path = self._report_path(organism)
                tables = parse_gene_report(path, strict=self.config.strict_parsing)
                report.malformed.extend(tables.malformed)
                parsed.append(tables)
            return parsed[0]

        return load

    def _report_path(self, organism: OrganismConfig) -> Path:
        path = self._ensure_local(organism.gene_report, organism.gene_report_url)
        if not path.exists():
            raise FileNotFoundError(f"Gene report not found: {path}")
        return path

    def _report_inputs(self, organism: OrganismConfig) -> dict:
        return {
            "gene_report": file_fingerprint(self._report_path(organism)),
            "strict": self.config.strict_parsing,
        }

    def _gene_type_stage(
        self, organism: OrganismConfig, report: RunReport, load_report
    ) -> pl.DataFrame:
        source = organism.gene_type_source
        if source == "none" or (source == "report" and organism.gene_report is None):
            return self._skip("gene_type", report, GENE_TYPE_SCHEMA)

        if source == "report":
            return self._cached_stage(
                organism, "gene_type",
                lambda: self._report_inputs(organism),
                lambda: (load_report().gene_types, True),
                report, schema=GENE_TYPE_SCHEMA,
            )

        return self._cached_stage(
            organism, "gene_type",
            lambda: self._remote_identity(organism, "o-fields=gene_type"),
            lambda: (fetch_gene_types(self.eupathdb, organism.name), True),
            report, schema=GENE_TYPE_SCHEMA,
        )

    def _go_ontology_path(self, report: RunReport) -> Path | None:
        """Return the local OBO file, or None when synonym resolution is unavailable."""
        if self.config.go_obo is None:
            return None
        try:
            path = self._ensure_local(self.config.go_obo, self.config.go_obo_url)
        except FetchError as e:
            report.warn(f"go: synonym resolution skipped ({e})")
            return None
        if not path.exists():
            report.warn(f"go: synonym resolution skipped, ontology not found: {path}")
            return None
        return path

    def _go_stage(
        self, organism: OrganismConfig, report: RunReport, load_report
    ) -> pl.DataFrame:
        sources = [
            s for s in organism.go_sources
            if s != "report" or organism.gene_report is not None
        ]
        if not sources:
            return self._skip("go", report, GO_SCHEMA)

        available: list[str] = []
        unavailable: dict[str, Exception] = {}
        obo: dict[str, Path | None] = {}

        def inputs() -> dict:
            identity: dict = {}
            for source in sources:
                try:
                    if source == "report":
                        identity["report"] = self._report_inputs(organism)
                    else:
                        identity["remote"] = self._remote_identity(organism, "o-tables=GOTerms")
                except RECOVERABLE_ERRORS as e:
                    unavailable[source] = e
                    continue
                available.append(source)

            if not available:
                raise next(iter(unavailable.values()))
            identity["sources"] = list(available)

            obo["path"] = self._go_ontology_path(report)
            if obo["path"] is not None:
                identity["obo"] = file_fingerprint(obo["path"])
            return identity

        def compute() -> tuple[pl.DataFrame, bool]:
            frames = []
            complete = True
            for source, error in unavailable.items():
                logger.warning("go_source_failed", source=source, error=str(error))
                report.degrade(f"go:{source}", str(error))
                complete = False

            for source in available:
                try:
                    if source == "report":
                        frames.append(load_report().go.select(["GID", "GO", "EVIDENCE"]))
                    else:
                        frames.append(fetch_go_terms(self.eupathdb, organism.name))
                except RECOVERABLE_ERRORS as e:
                    logger.warning("go_source_failed", source=source, error=str(e))
                    report.degrade(f"go:{source}", str(e))
                    complete = False

            ontology = load_obo(obo["path"]) if obo.get("path") is not None else None
            df, stats = process_go_evidence(frames, ontology=ontology)
            if stats is not None and stats.dropped:
                report.warn(
                    f"go: dropped {stats.dropped} rows with obsolete or unknown terms"
                )
            return df, complete

        return self._cached_stage(organism, "go", inputs, compute, report, schema=GO_SCHEMA)

    def _interpro_stage(
        self, organism: OrganismConfig, report: RunReport, load_report
    ) -> pl.DataFrame:
        if organism.gene_report is None:
            return self._skip("interpro", report, INTERPRO_SCHEMA)
        return self._cached_stage(
            organism, "interpro",
            lambda: self._report_inputs(organism),
            lambda: (load_report().interpro, True),
            report, schema=INTERPRO_SCHEMA,
        )

    def _kegg_stage(self, organism: OrganismConfig, report: RunReport) -> pl.DataFrame:
        if not organism.kegg:
            report.stage_sources["kegg_mapping"] = "skipped"
            report.stage_sources["kegg_pathways"] = "skipped"
            return pl.DataFrame(schema=KEGG_SCHEMA)

        code = organism.kegg_abbreviation()
        fetched = {}

        def fetch():
            if "error" in fetched:
                raise fetched["error"]
            if "result" not in fetched:
                try:
                    fetched["result"] = fetch_kegg_pathways(
                        self.kegg, code, max_workers=self.config.api.max_workers
                    )
                except FetchError as e:
                    fetched["error"] = e
                    raise
                for pathway, error in fetched["result"].failures.items():
                    report.degrade(f"kegg:{pathway}", error)
            return fetched["result"]

        def inputs() -> dict:
            return {
                "kegg_code": code,
                "kegg_url": self.config.provider.kegg_url,
                "versions": self.config.versions.model_dump(),
            }

        membership = self._cached_stage(
            organism, "kegg_mapping", inputs,
            lambda: (fetch().membership, not fetch().failures),
            report, schema=MEMBERSHIP_SCHEMA,
        )
        pathways = self._cached_stage(
            organism, "kegg_pathways", inputs,
            lambda: (fetch().pathways, not fetch().failures),
            report, schema=PATHWAY_SCHEMA,
        )

        normalizer = IdentifierNormalizer(aliases=self._load_aliases(organism, report))
        gene_pathways, norm_report = normalize_kegg_membership(membership, normalizer)
        if norm_report.unmapped_ids:
            report.unmapped["kegg"] = norm_report.unmapped_ids

        validation = MappingValidator().validate(norm_report, label="KEGG gene IDs")
        if not validation.passed:
            report.warn("; ".join(validation.messages))

        return build_kegg_table(gene_pathways, pathways)

    def _load_aliases(self, organism: OrganismConfig, report: RunReport) -> AliasTable | None:
        if organism.aliases is None:
            return None
        if not organism.aliases.exists():
            report.warn(f"alias file not found: {organism.aliases}")
            return None
        aliases = AliasTable.from_file(
            organism.aliases,
            columns=organism.alias_columns,
            pattern=organism.alias_pattern,
        )
        if aliases.conflicts:
            report.warn(
                f"{len(aliases.conflicts)} aliases map to more than one GID "
                f"(first mapping kept)"
            )
        return aliases

    # -- assembly -------------------------------------------------------

    def assemble(
        self,
        gene_info: pl.DataFrame,
        secondary: dict[str, pl.DataFrame],
        report: RunReport,
    ) -> dict[str, pl.DataFrame]:
        """Reduce every secondary table to the primary GIDs.

        Dropped rows are recorded as a JoinMismatch per table.
        """
        primary_gids = gene_info.get_column("GID")
        tables = {"gene_info": gene_info}
        for name, df in secondary.items():
            kept, mismatch = semi_join_primary(df, primary_gids, name)
            if mismatch is not None:
                logger.warning(
                    "join_mismatch",
                    table=name,
                    dropped=mismatch.dropped,
                    examples=mismatch.examples,
                )
                report.join_mismatches.append(mismatch)
            tables[name] = kept.select(["GID", *[c for c in kept.columns if c != "GID"]])
        return tables

    def run(self, organism: OrganismConfig | str) -> OrganismAnnotations:
        """Build all tables for one organism.

        Raises:
            MissingPrimarySource: If the GFF is absent or holds no genes
            FetchError: If the GFF had to be downloaded and the download failed
        """
        if isinstance(organism, str):
            organism = self.config.get_organism(organism)

        logger.info("organism_build_start", organism=organism.name, force=self.force)
        report = RunReport(organism=organism.name)

        gene_info, chromosome = self._primary_stages(organism, report)
        load_report = self._report_loader(organism, report)

        secondary = {
            "chromosome": chromosome,
            "gene_type": self._gene_type_stage(organism, report, load_report),
            "go": self._go_stage(organism, report, load_report),
            "interpro": self._interpro_stage(organism, report, load_report),
            "kegg": self._kegg_stage(organism, report),
        }

        tables = self.assemble(gene_info, secondary, report)

        logger.info(
            "organism_build_complete",
            organism=organism.name,
            genes=gene_info.height,
            rows={name: df.height for name, df in tables.items()},
            degraded=sorted(report.degraded),
        )
        return OrganismAnnotations(organism=organism, tables=tables, report=report)

    def run_batch(self, organisms: list[OrganismConfig | str] | None = None) -> BatchResult:
        """Build several organisms, collecting per-organism fetch failures.

        Args:
            organisms: Organisms to build (default: all configured)

        Raises:
            MissingPrimarySource: If any organism lacks its primary source
        """
        if organisms is None:
            organisms = list(self.config.organisms)

        results = []
        failures: dict[str, FetchError] = {}
        for organism in organisms:
            if isinstance(organism, str):
                organism = self.config.get_organism(organism)
            try:
                results.append(self.run(organism))
            except FetchError as e:
                logger.error("organism_build_failed", organism=organism.name, error=str(e))
                failures[organism.name] = e

        self.provenance.save_to_store(self.store)
        return BatchResult(results=results, failures=failures)
