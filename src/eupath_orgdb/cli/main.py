"""Main CLI entry point for eupath-orgdb.

Provides command group with global options and subcommands for building
organism annotation tables.
"""

import logging
from pathlib import Path

import click

from eupath_orgdb import __version__
from eupath_orgdb.config.loader import load_config
from eupath_orgdb.cli.build_cmd import build


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """eupath-orgdb: Build organism annotation tables from EuPathDB and KEGG.

    Merges GFF gene sets, EuPathDB gene reports and web services, and KEGG
    pathways into GID-keyed tables with cached, reproducible stages.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"eupath-orgdb v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Data Source Versions:", bold=True))
        click.echo(f"  EuPathDB Release: {config.versions.eupathdb_release}")
        click.echo(f"  KEGG Release:     {config.versions.kegg_release or 'unspecified'}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Cache Directory: {config.cache_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path}")
        click.echo(f"  Output Directory: {config.output_dir}")
        click.echo()

        click.echo(click.style("API Configuration:", bold=True))
        click.echo(f"  Rate Limit: {config.api.rate_limit_per_second} req/s")
        click.echo(f"  Max Retries: {config.api.max_retries}")
        click.echo(f"  Cache TTL: {config.api.cache_ttl_seconds}s")
        click.echo(f"  Timeout: {config.api.timeout_seconds}s")
        click.echo(f"  Workers: {config.api.max_workers}")
        click.echo()

        click.echo(click.style("Organisms:", bold=True))
        for organism in config.organisms:
            click.echo(
                f"  {organism.name} ({organism.slug()}, KEGG: "
                f"{organism.kegg_abbreviation() if organism.kegg else 'off'})"
            )

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


cli.add_command(build)


if __name__ == '__main__':
    cli()
