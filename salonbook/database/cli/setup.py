"""
Setup & Initialization Commands
--------------------------------

Commands:
    - init: Create the tagging schema and stamp the Alembic revision
"""
import click

from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import handle_cli_error
from . import get_db


@click.command()
@click.pass_context
def init(ctx):
    """Initialize the tagging database schema."""
    try:
        click.echo("🚀 Initializing Salonbook tagging database...")
        db = get_db(ctx)
        db.initialize_schema()

        status = db.get_migration_history()
        if status.get("current_revision"):
            click.echo(f"📌 Schema revision: {status['current_revision']}")
        click.echo("✅ Database initialized!")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "init")
