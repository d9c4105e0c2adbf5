"""
Tag Commands
-------------

Commands:
    - available: {key: values} used in one collection
    - keys: Every tag key in the catalog
    - values: Every value stored under a key
    - legacy: Values of key/composer/style in use
    - add: Register a tag in the vocabulary
"""
import json

import click

from flexlist.core.exceptions import StorageError, ValidationError
from flexlist.core.logging_manager import handle_cli_error
from . import get_storage


@click.group()
@click.pass_context
def tags(ctx: click.Context) -> None:
    """Browse the tag vocabulary."""
    pass


@tags.command("available")
@click.argument("collection_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def available(ctx, collection_id, as_json):
    """Show the tags used by the items of a collection."""
    try:
        vocabulary = get_storage(ctx).get_available_tags(collection_id)
        if as_json:
            click.echo(json.dumps(vocabulary, indent=2, ensure_ascii=False))
            return
        if not vocabulary:
            click.echo("No tags.")
            return
        for key, values in vocabulary.items():
            click.echo(f"  {key}: {', '.join(values)}")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "get_available_tags", {"collection_id": collection_id})


@tags.command("keys")
@click.pass_context
def keys(ctx):
    """List every tag key."""
    try:
        for key in get_storage(ctx).list_tag_keys():
            click.echo(key)
    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "list_tag_keys")


@tags.command("values")
@click.argument("key")
@click.pass_context
def values(ctx, key):
    """List the values stored under KEY."""
    try:
        for value in get_storage(ctx).list_tag_values(key):
            click.echo(value)
    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "list_tag_values", {"key": key})


@tags.command("legacy")
@click.argument("field", type=click.Choice(["key", "composer", "style"]))
@click.pass_context
def legacy(ctx, field):
    """List the values of a legacy field across all items."""
    try:
        for value in get_storage(ctx).list_legacy_field_values(field):
            click.echo(value)
    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "list_legacy_field_values", {"field": field})


@tags.command("add")
@click.argument("key")
@click.argument("value")
@click.pass_context
def add(ctx, key, value):
    """Register KEY=VALUE (returns the existing tag if equivalent)."""
    try:
        tag = get_storage(ctx).upsert_tag(key, value)
        click.echo(f"🏷️  {tag.key}: {tag.value} ({tag.id})")
    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "upsert_tag", {"key": key, "value": value})
