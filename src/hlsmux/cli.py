"""Command-line interface for HLSMux."""

import asyncio
import sys
from pathlib import Path

import click

from hlsmux import __version__
from hlsmux.config import load_config
from hlsmux.core.catalog import JobCatalog
from hlsmux.core.pipeline import TranscodePipeline
from hlsmux.models.job import validate_job_id
from hlsmux.utils.logger import setup_logging


def _check_job_id(ctx, param, value):
    if value is None:
        return None
    try:
        return validate_job_id(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """HLSMux - turn media containers into HLS renditions."""
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        setup_logging(cfg.logging)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--job-id",
    default=None,
    callback=_check_job_id,
    help="Output directory name (derived from FILE if omitted)",
)
@click.pass_context
def process(ctx, file, job_id):
    """Process a single container file.

    Args:
        file: Path to the container to process
    """
    config = ctx.obj["config"]

    click.echo(f"Processing: {file}")

    pipeline = TranscodePipeline(config)
    result = asyncio.run(pipeline.run(file, job_id))

    if result.success:
        click.secho(f"{result}", fg="green")
        click.echo(f"Stream URL: {config.api.streams_prefix}/{result.manifest}")
        sys.exit(0)
    else:
        click.secho(f"{result}", fg="red", err=True)
        sys.exit(1)


@cli.command(name="list")
@click.pass_context
def list_jobs(ctx):
    """List completed jobs in the output directory."""
    config = ctx.obj["config"]
    catalog = JobCatalog(config.storage.output_path, config.api.streams_prefix)

    entries = catalog.scan()
    if not entries:
        click.secho("⊘ No processed videos found", fg="yellow")
        return

    for entry in entries:
        click.echo(f"{entry.name}\t{entry.url}")
    click.echo(f"Total: {len(entries)}")


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides api.host)")
@click.option("--port", type=int, default=None, help="Bind port (overrides api.port)")
@click.pass_context
def serve(ctx, host, port):
    """Start the HTTP server (upload form, listing and stream files)."""
    config = ctx.obj["config"]
    if host:
        config.api.host = host
    if port:
        config.api.port = port

    base_url = f"http://{config.api.host}:{config.api.port}"
    click.echo("Starting HLSMux server...")
    click.echo(f"Listening on {config.api.host}:{config.api.port}")
    click.echo("")
    click.echo("Endpoints:")
    click.echo(f"  - Upload form:  {base_url}/")
    click.echo(f"  - Video list:   {base_url}/videos")
    click.echo(f"  - Streams:      {base_url}{config.api.streams_prefix}/")
    click.echo(f"  - Health check: {base_url}/health")
    click.echo("")
    click.echo("Press Ctrl+C to stop")

    from hlsmux.daemon import start_server

    try:
        start_server(config)
    except KeyboardInterrupt:
        click.echo("\n\nServer stopped")
        sys.exit(0)


@cli.command()
def version():
    """Show version information."""
    click.echo(f"HLSMux v{__version__}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
