#!/usr/bin/env python3
"""
FlexList Catalog CLI
---------------------

Command-line interface over either storage backend.

This module provides the main CLI group and shared context setup
for all catalog commands.

Command Structure:
    - Collections (collections list/show/create/rename/delete)
    - Items (items list/show/add/edit/delete/filter)
    - Tags (tags available/keys/values/legacy/add)
    - Import (import ids/titles)

Usage:
    # Get general help
    flexlist --help

    # Use the local snapshot backend for one command
    flexlist --backend local collections list

    # Filter a collection
    flexlist items filter <collection-id> --tag Key=Eb --level knows
"""
import logging
from typing import Dict, List, Tuple

import click

from flexlist.core.config import BACKENDS, load_settings
from flexlist.core.exceptions import ValidationError
from flexlist.core.logging_manager import FlexlistLogger, handle_cli_error
from flexlist.storage.base import CatalogStorage
from flexlist.storage.factory import open_storage


@click.group()
@click.option(
    "--backend",
    type=click.Choice(BACKENDS),
    default=None,
    help="Storage backend (default from settings: durable)",
)
@click.option("--db-path", type=click.Path(), default=None, help="Path to database file")
@click.option(
    "--snapshot-path", type=click.Path(), default=None, help="Path to JSON snapshot"
)
@click.option("--log-dir", type=click.Path(), default=None, help="Path to log directory")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML settings file (default: flexlist.yaml in FLEXLIST_HOME)",
)
@click.option(
    "--seed/--no-seed",
    default=None,
    help="Seed sample data into a fresh catalog",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, backend, db_path, snapshot_path, log_dir, config_path, seed, verbose):
    """FlexList Catalog CLI"""

    # Suppress Alembic INFO logging by default
    logging.getLogger("alembic").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    try:
        settings = load_settings(
            config_path,
            overrides={
                "backend": backend,
                "db_path": db_path,
                "snapshot_path": snapshot_path,
                "log_dir": log_dir,
                "seed_sample_data": seed,
            },
        )
    except ValidationError as e:
        handle_cli_error(ctx, e, "load_settings")
        return

    ctx.obj["settings"] = settings
    if settings.log_dir is not None:
        logger = FlexlistLogger(settings.log_dir, component_name="cli")
        ctx.obj["logger"] = logger
        ctx.call_on_close(logger.close)


def get_storage(ctx) -> CatalogStorage:
    """Get or open the configured storage backend from context."""
    if "storage" not in ctx.obj:
        storage = open_storage(ctx.obj["settings"], logger=ctx.obj.get("logger"))
        ctx.obj["storage"] = storage
        ctx.find_root().call_on_close(storage.close)
    return ctx.obj["storage"]


def parse_tag_options(values: Tuple[str, ...]) -> List[Tuple[str, str]]:
    """
    Parse repeated KEY=VALUE options.

    Raises:
        click.BadParameter: If an option has no '='
    """
    pairs: List[Tuple[str, str]] = []
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{raw}'", param_hint="--tag")
        pairs.append((key.strip(), value.strip()))
    return pairs


def group_tag_options(values: Tuple[str, ...]) -> Dict[str, List[str]]:
    """KEY=VALUE options as a filter mapping, repeated keys collected."""
    grouped: Dict[str, List[str]] = {}
    for key, value in parse_tag_options(values):
        grouped.setdefault(key, []).append(value)
    return grouped


# Import and register command modules
# These imports must come after CLI group definition
from .collections import collections  # noqa: E402
from .items import items  # noqa: E402
from .tags import tags  # noqa: E402
from .imports import import_group  # noqa: E402

cli.add_command(collections)
cli.add_command(items)
cli.add_command(tags)
cli.add_command(import_group)


if __name__ == "__main__":
    cli(obj={})
