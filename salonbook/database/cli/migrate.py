"""
Legacy Migration Commands
-------------------------

Move associations from the five per-entity join tables into entity_tags.

Commands:
    - legacy: Copy legacy rows into entity_tags (idempotent)
    - drop-legacy: Drop the legacy tables (destructive, asks first)

Usage:
    # Copy, then rebuild usage counts
    tagdb migrate legacy
    tagdb usage recount

    # Once entity_tags has been verified and backed up
    tagdb migrate drop-legacy
"""
import click

from salonbook.core.exceptions import DatabaseError
from salonbook.core.logging_manager import handle_cli_error
from . import get_db


@click.group()
@click.pass_context
def migrate(ctx: click.Context) -> None:
    """Legacy tag table migration."""
    pass


@migrate.command("legacy")
@click.pass_context
def migrate_legacy(ctx):
    """Copy legacy tag join tables into entity_tags."""
    try:
        click.echo("🚀 Migrating legacy tag tables to entity_tags...")
        db = get_db(ctx)
        summary = db.legacy_migration.run()

        click.echo("\n📊 Migration Summary")
        click.echo("=" * 50)
        for result in summary.tables:
            if result.missing:
                click.echo(f"  ⚠️  {result.table_name:<25} not found, skipped")
            else:
                click.echo(
                    f"  ✅ {result.table_name:<25} "
                    f"{result.migrated} migrated, {result.skipped} already existed"
                )
        click.echo("=" * 50)
        click.echo(
            f"Total: {summary.total_migrated} migrated, "
            f"{summary.total_skipped} skipped"
        )
        click.echo("\n💡 Legacy tables were kept. Run 'tagdb usage recount' to sync usage counts.")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "migrate_legacy")


@migrate.command("drop-legacy")
@click.confirmation_option(
    prompt="⚠️  This will DROP the legacy tag tables! Has entity_tags been verified and backed up?"
)
@click.pass_context
def migrate_drop_legacy(ctx):
    """Drop legacy tag join tables (DANGEROUS - run after verifying the migration)."""
    try:
        click.echo("🗑️  Dropping legacy tag tables...")
        db = get_db(ctx)
        summary = db.legacy_migration.drop_legacy_tables()

        click.echo("\n📊 Removal Summary")
        click.echo("=" * 50)
        for table_name, records in summary.dropped:
            click.echo(f"  ✅ Dropped {table_name:<25} ({records} records)")
        for table_name in summary.not_found:
            click.echo(f"  ⚠️  {table_name} not found")
        for table_name, message in summary.errors:
            click.echo(f"  ❌ {table_name}: {message}", err=True)
        click.echo("=" * 50)

        if summary.errors:
            ctx.exit(1)

    except DatabaseError as e:
        handle_cli_error(ctx, e, "migrate_drop_legacy")
