"""Build command: assemble annotation tables for configured organisms.

Orchestrates the full build flow:
1. Load config (with CLI overrides)
2. Create PipelineStore and ProvenanceTracker
3. Run every stage per organism, reusing fingerprint-matched checkpoints
4. Write TSV tables and provenance sidecars
5. Print the run summary
"""

import logging
import sys

import click

from eupath_orgdb.config.loader import load_config_with_overrides
from eupath_orgdb.errors import MissingPrimarySource, ParseError
from eupath_orgdb.output import write_annotation_tables, write_unmapped_ids
from eupath_orgdb.persistence import PipelineStore, ProvenanceTracker
from eupath_orgdb.pipeline import MergeOrchestrator

logger = logging.getLogger(__name__)


@click.command('build')
@click.option(
    '--organism', 'organisms',
    multiple=True,
    help='Organism to build (name, slug or KEGG code); repeatable. Default: all'
)
@click.option(
    '--force',
    is_flag=True,
    help='Recompute every stage even if a matching checkpoint exists'
)
@click.option(
    '--strict',
    is_flag=True,
    help='Fail on the first malformed input line instead of reporting it'
)
@click.option(
    '--parquet',
    is_flag=True,
    help='Also write tables as Parquet'
)
@click.option(
    '--output-dir',
    type=click.Path(file_okay=False),
    default=None,
    help='Override the configured output directory'
)
@click.pass_context
def build(ctx, organisms, force, strict, parquet, output_dir):
    """Build annotation tables for one or more organisms.

    Secondary sources that fail are reported and emitted as empty tables;
    a missing GFF (primary source) aborts the build.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== eupath-orgdb build ===", bold=True))
    click.echo()

    overrides = {}
    if strict:
        overrides['strict_parsing'] = True
    if output_dir is not None:
        overrides['output_dir'] = output_dir

    try:
        config = load_config_with_overrides(config_path, overrides)
    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        sys.exit(1)

    try:
        selected = [config.get_organism(key) for key in organisms] or None
    except KeyError as e:
        click.echo(click.style(f"Error: {e.args[0]}", fg='red'), err=True)
        sys.exit(1)

    store = PipelineStore.from_config(config)
    try:
        provenance = ProvenanceTracker.from_config(config)
        orchestrator = MergeOrchestrator(config, store, provenance=provenance, force=force)

        click.echo(f"EuPathDB Release: {config.versions.eupathdb_release}")
        click.echo(f"DuckDB Path: {config.duckdb_path}")
        click.echo()

        batch = orchestrator.run_batch(selected)

        for result in batch.results:
            paths = write_annotation_tables(
                result, config.output_dir, parquet=parquet, provenance=provenance
            )
            write_unmapped_ids(result, config.output_dir)

            color = 'yellow' if result.report.has_warnings else 'green'
            click.echo(click.style(result.report.summary(), fg=color))
            for name, df in result.tables.items():
                click.echo(f"  {name}: {df.height} rows")
            click.echo(f"  Provenance: {paths['provenance']}")
            click.echo()

        for name, error in batch.failures.items():
            click.echo(click.style(f"FAILED {name}: {error}", fg='red'), err=True)

        provenance.save_sidecar(config.output_dir / "build")

        click.echo(click.style("=== Build Summary ===", bold=True))
        click.echo(f"Built: {len(batch.results)}")
        click.echo(f"Failed: {len(batch.failures)}")

    except (MissingPrimarySource, ParseError) as e:
        click.echo(click.style(f"Build failed: {e}", fg='red'), err=True)
        logger.error(f"Build aborted: {e}")
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"Build failed: {e}", fg='red'), err=True)
        logger.exception("Build command failed")
        sys.exit(1)
    finally:
        store.close()

    if batch.failures and not batch.results:
        sys.exit(1)
