"""
Command line entry point for loading model data into the configured store.
"""

import json

import click

from .. import config
from ..database import build_store
from ..errors import GepError
from ..logconfig import setup_logging
from .pipeline import ingest_directory


@click.command()
@click.argument("data_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--model", "model_id", default=None, help="Only ingest this model id")
@click.option("--json", "output_json", is_flag=True, help="Print the reports as JSON")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(data_dir, model_id, output_json, debug):
    """Ingest countries, models and scenario files from DATA_DIR."""
    setup_logging("DEBUG" if debug else config.LOG_LEVEL)
    store = build_store()
    try:
        reports = ingest_directory(store, data_dir, only=model_id)
    except GepError as e:
        raise click.ClickException(str(e))

    if output_json:
        click.echo(json.dumps([r.to_dict() for r in reports], indent=2))
        return

    for r in reports:
        click.echo(f"{r.model_id}: {len(r.scenario_ids)} scenarios, {r.feature_count} features")
        for w in r.warnings:
            click.echo(f"  ! {w}")
    if not reports:
        click.echo("No models ingested.")


if __name__ == "__main__":
    cli()
