"""
Main CLI entry point for the Content Factory
"""

import logging

import click

from ..core.observability import setup_logfire
from .pipeline import (
    approve_command,
    batch_command,
    propose_command,
    run_command,
    status_command,
    workers_command,
)
from .maintenance import heal_command, podcast_command, seo_command


@click.group()
@click.version_option(version='1.0.0')
@click.option("--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """
    Tax4US Content Factory - bilingual content pipeline

    Run content workers in dependency order, approve paused runs,
    heal inconsistent records and run the scheduled pipelines.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    setup_logfire()


# Register commands
cli.add_command(run_command)
cli.add_command(propose_command)
cli.add_command(approve_command)
cli.add_command(status_command)
cli.add_command(workers_command)
cli.add_command(batch_command)
cli.add_command(heal_command)
cli.add_command(seo_command)
cli.add_command(podcast_command)


if __name__ == '__main__':
    cli()
