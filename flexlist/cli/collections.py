"""
Collection Commands
--------------------

Commands:
    - list: Collections with item counts
    - show: One collection and its items
    - create: New collection
    - rename: Change name and/or description
    - delete: Remove a collection with all its items
"""
import json
import sys

import click

from flexlist.core.exceptions import StorageError, ValidationError
from flexlist.core.logging_manager import handle_cli_error
from . import get_storage


@click.group()
@click.pass_context
def collections(ctx: click.Context) -> None:
    """Create, browse and delete collections."""
    pass


@collections.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def list_collections(ctx, as_json):
    """List all collections with item counts."""
    try:
        summaries = get_storage(ctx).list_collections()

        if as_json:
            click.echo(json.dumps([s.to_dict() for s in summaries], indent=2))
            return

        if not summaries:
            click.echo("No collections yet.")
            return

        click.echo(f"\n📚 Collections ({len(summaries)}):\n")
        for summary in summaries:
            click.echo(f"  {summary.id}  {summary.name} ({summary.item_count} items)")
            if summary.description:
                click.echo(f"      {summary.description}")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "list_collections")


@collections.command("show")
@click.argument("collection_id")
@click.pass_context
def show(ctx, collection_id):
    """Display a collection and its items."""
    try:
        storage = get_storage(ctx)
        collection = storage.get_collection(collection_id)
        if collection is None:
            click.echo(f"❌ No collection found with id {collection_id}", err=True)
            sys.exit(1)

        items = storage.list_items(collection_id)
        click.echo(f"\n📚 {collection.name}")
        if collection.description:
            click.echo(f"   {collection.description}")
        click.echo(f"\n{len(items)} items:\n")
        for item in items:
            click.echo(f"  • {item.title} [{item.knowledge_level}]  ({item.id})")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "show_collection", {"collection_id": collection_id})


@collections.command("create")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Collection description")
@click.pass_context
def create(ctx, name, description):
    """Create a new collection."""
    try:
        collection = get_storage(ctx).create_collection(name, description)
        click.echo(f"✅ Created collection '{collection.name}' ({collection.id})")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "create_collection", {"name": name})


@collections.command("rename")
@click.argument("collection_id")
@click.argument("name", required=False)
@click.option("--description", "-d", default=None, help="New description")
@click.pass_context
def rename(ctx, collection_id, name, description):
    """Rename a collection and/or change its description."""
    patch = {}
    if name is not None:
        patch["name"] = name
    if description is not None:
        patch["description"] = description
    if not patch:
        raise click.UsageError("Nothing to change: give a NAME and/or --description")

    try:
        collection = get_storage(ctx).update_collection(collection_id, patch)
        if collection is None:
            click.echo(f"❌ No collection found with id {collection_id}", err=True)
            sys.exit(1)
        click.echo(f"✅ Updated collection '{collection.name}'")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "update_collection", {"collection_id": collection_id})


@collections.command("delete")
@click.argument("collection_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, collection_id, yes):
    """Delete a collection and all of its items."""
    if not yes:
        click.confirm(
            f"Delete collection {collection_id} and all its items?", abort=True
        )

    try:
        if not get_storage(ctx).delete_collection(collection_id):
            click.echo(f"❌ No collection found with id {collection_id}", err=True)
            sys.exit(1)
        click.echo(f"🗑️  Deleted collection {collection_id}")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "delete_collection", {"collection_id": collection_id})
