"""
Usage Count Commands
--------------------

Commands:
    - recount: Rebuild tag usage counts from entity_tags
"""
import click

from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import handle_cli_error
from . import get_db


@click.group()
@click.pass_context
def usage(ctx: click.Context) -> None:
    """Tag usage count maintenance."""
    pass


@usage.command("recount")
@click.option("--tag-id", default=None, help="Only recount this tag")
@click.pass_context
def usage_recount(ctx, tag_id):
    """Rebuild usage counts from the actual associations."""
    try:
        db = get_db(ctx)
        db.reconciler.drain()
        corrections = db.reconciler.recount(tag_id)

        if not corrections:
            click.echo("✅ All usage counts are correct")
            return

        click.echo(f"🔧 Corrected {len(corrections)} usage count(s):")
        for corrected_id, count in sorted(corrections.items()):
            click.echo(f"  • {corrected_id}: {count}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "usage_recount", additional_context={"tag_id": tag_id})
