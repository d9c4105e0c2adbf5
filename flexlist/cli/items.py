"""
Item Commands
--------------

Commands:
    - list: Items of a collection in insertion order
    - show: One item with its effective tags
    - add: Create an item with legacy fields and extra tags
    - edit: Change fields of an item; --tag replaces its extra tags
    - delete: Remove an item
    - filter: Search and tag/level filters over a collection
"""
import json
import sys
from typing import Any, Dict, List

import click

from flexlist.core.exceptions import StorageError, ValidationError
from flexlist.core.logging_manager import handle_cli_error
from flexlist.core.validators import KNOWLEDGE_LEVELS
from flexlist.storage.filtering import KNOWLEDGE_LEVEL_FILTER
from flexlist.storage.records import ItemRecord
from . import get_storage, group_tag_options, parse_tag_options

_FIELD_OPTIONS = (
    ("key", "key"),
    ("composer", "composer"),
    ("style", "style"),
    ("notes", "notes"),
    ("media", "media_ref"),
    ("start", "media_start_seconds"),
    ("lead_sheet", "lead_sheet_ref"),
    ("level", "knowledge_level"),
)


def _item_fields(options: Dict[str, Any]) -> Dict[str, Any]:
    """Map supplied command options onto item field names."""
    return {
        field: options[option]
        for option, field in _FIELD_OPTIONS
        if options.get(option) is not None
    }


def _echo_items(items: List[ItemRecord], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return

    if not items:
        click.echo("No items.")
        return

    for item in items:
        details = ", ".join(
            value for value in (item.key, item.composer, item.style) if value
        )
        suffix = f" ({details})" if details else ""
        click.echo(f"  • {item.title}{suffix} [{item.knowledge_level}]  ({item.id})")
    click.echo(f"\nTotal: {len(items)} items")


def item_field_options(function):
    """Shared options for add/edit."""
    decorators = [
        click.option("--key", default=None, help="Musical key (legacy field)"),
        click.option("--composer", default=None, help="Composer (legacy field)"),
        click.option("--style", default=None, help="Style (legacy field)"),
        click.option("--notes", default=None, help="Free-text notes"),
        click.option("--media", default=None, help="Media reference"),
        click.option("--start", type=int, default=None, help="Media start offset in seconds"),
        click.option("--lead-sheet", default=None, help="Lead sheet reference"),
        click.option("--level", type=click.Choice(KNOWLEDGE_LEVELS), default=None),
        click.option("--tag", "tags", multiple=True, help="Extra tag as KEY=VALUE (repeatable)"),
    ]
    for decorator in reversed(decorators):
        function = decorator(function)
    return function


@click.group()
@click.pass_context
def items(ctx: click.Context) -> None:
    """Create, browse and filter items."""
    pass


@items.command("list")
@click.argument("collection_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def list_items(ctx, collection_id, as_json):
    """List the items of a collection."""
    try:
        _echo_items(get_storage(ctx).list_items(collection_id), as_json)
    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "list_items", {"collection_id": collection_id})


@items.command("show")
@click.argument("item_id")
@click.pass_context
def show(ctx, item_id):
    """Display one item with its tags."""
    try:
        storage = get_storage(ctx)
        item = storage.get_item(item_id)
        if item is None:
            click.echo(f"❌ No item found with id {item_id}", err=True)
            sys.exit(1)

        click.echo(f"\n🎵 {item.title}")
        click.echo(f"   Level: {item.knowledge_level}")
        if item.notes:
            click.echo(f"   Notes: {item.notes}")
        if item.media_ref:
            offset = f" @ {item.media_start_seconds}s" if item.media_start_seconds else ""
            click.echo(f"   Media: {item.media_ref}{offset}")
        if item.lead_sheet_ref:
            click.echo(f"   Lead sheet: {item.lead_sheet_ref}")

        pairs = storage.get_item_tags(item_id)
        if pairs:
            click.echo("\n🏷️  Tags:")
            for pair in pairs:
                click.echo(f"   {pair.key}: {pair.value}")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "show_item", {"item_id": item_id})


@items.command("add")
@click.argument("collection_id")
@click.argument("title")
@item_field_options
@click.pass_context
def add(ctx, collection_id, title, tags, **options):
    """Add an item to a collection."""
    fields = {"collection_id": collection_id, "title": title, **_item_fields(options)}
    try:
        item = get_storage(ctx).create_item(fields, parse_tag_options(tags))
        click.echo(f"✅ Added '{item.title}' ({item.id})")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "create_item", {"collection_id": collection_id})


@items.command("edit")
@click.argument("item_id")
@click.option("--title", default=None, help="New title")
@item_field_options
@click.pass_context
def edit(ctx, item_id, title, tags, **options):
    """Update an item. --tag replaces all extra tags; omit it to keep them."""
    patch = _item_fields(options)
    if title is not None:
        patch["title"] = title
    extra_tags = parse_tag_options(tags) if tags else None

    try:
        item = get_storage(ctx).update_item(item_id, patch, extra_tags)
        if item is None:
            click.echo(f"❌ No item found with id {item_id}", err=True)
            sys.exit(1)
        click.echo(f"✅ Updated '{item.title}'")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "update_item", {"item_id": item_id})


@items.command("delete")
@click.argument("item_id")
@click.pass_context
def delete(ctx, item_id):
    """Delete an item."""
    try:
        if not get_storage(ctx).delete_item(item_id):
            click.echo(f"❌ No item found with id {item_id}", err=True)
            sys.exit(1)
        click.echo(f"🗑️  Deleted item {item_id}")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "delete_item", {"item_id": item_id})


@items.command("filter")
@click.argument("collection_id")
@click.option("--search", "-s", default=None, help="Text to find in title, key, composer, style or notes")
@click.option("--tag", "tags", multiple=True, help="KEY=VALUE; repeat a key for OR, add keys for AND")
@click.option("--level", "levels", multiple=True, type=click.Choice(KNOWLEDGE_LEVELS))
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def filter_items(ctx, collection_id, search, tags, levels, as_json):
    """Search and filter the items of a collection."""
    try:
        filters = group_tag_options(tags)
        if levels:
            filters[KNOWLEDGE_LEVEL_FILTER] = list(levels)
        _echo_items(get_storage(ctx).filter_items(collection_id, search, filters), as_json)

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "filter_items", {"collection_id": collection_id})
