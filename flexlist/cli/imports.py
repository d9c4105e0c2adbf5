"""
Import Commands
----------------

Commands:
    - ids: Copy items (with tags) from anywhere into a collection
    - titles: Create items from a list of titles, skipping duplicates
"""
import click

from flexlist.core.exceptions import StorageError, ValidationError
from flexlist.core.logging_manager import handle_cli_error
from flexlist.storage.importing import MAX_BULK_LINES
from . import get_storage


@click.group("import")
@click.pass_context
def import_group(ctx: click.Context) -> None:
    """Import items into a collection."""
    pass


@import_group.command("ids")
@click.argument("target_collection_id")
@click.argument("item_ids", nargs=-1, required=True)
@click.pass_context
def import_ids(ctx, target_collection_id, item_ids):
    """Copy ITEM_IDS into TARGET_COLLECTION_ID (missing ids are skipped)."""
    try:
        result = get_storage(ctx).import_items_by_id(target_collection_id, list(item_ids))
        click.echo(f"✅ Imported {result.count} of {len(item_ids)} items")

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "import_items_by_id", {"target": target_collection_id})


@import_group.command("titles")
@click.argument("target_collection_id")
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.pass_context
def import_titles(ctx, target_collection_id, source):
    """
    Create one item per line of SOURCE (a file, or stdin).

    A leading "[  ]" checkbox marker is stripped. Titles already in the
    collection (case-insensitive) are reported and skipped.
    """
    try:
        result = get_storage(ctx).bulk_import_by_title(target_collection_id, [source.read()])

        click.echo(f"✅ Imported {len(result.imported)} items")
        for title in result.imported:
            click.echo(f"  + {title}")
        if result.duplicates:
            click.echo(f"\n⚠️  Skipped {len(result.duplicates)} duplicates:")
            for line in result.duplicates:
                click.echo(f"  = {line}")
        if result.truncated:
            click.echo(
                f"\n⚠️  Ignored {result.truncated} lines past the {MAX_BULK_LINES}-line limit"
            )

    except (StorageError, ValidationError) as e:
        handle_cli_error(ctx, e, "bulk_import_by_title", {"target": target_collection_id})
