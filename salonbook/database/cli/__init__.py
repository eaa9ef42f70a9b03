#!/usr/bin/env python3
"""
Salonbook Tagging CLI
---------------------

Command-line interface for the tagging database.

This module provides the main CLI group and shared context setup
for all tagging commands.

Command Structure:
    - Setup & Initialization (init)
    - Tag Management (tags)
    - Entity Tagging (entity)
    - Legacy Migration (migrate)
    - Usage Counts (usage)

Usage:
    # Get general help
    tagdb --help

    # Tag a service
    tagdb entity set service svc1 t1 t2

    # Copy legacy join tables into entity_tags
    tagdb migrate legacy
"""
import logging
from pathlib import Path

import click

from salonbook.core.paths import ALEMBIC_DIR, DB_URL_ENV_VAR, DEFAULT_DB_URL, LOG_DIR
from salonbook.database.manager import SalonbookDB


@click.group()
@click.option(
    "--db-url",
    default=DEFAULT_DB_URL,
    envvar=DB_URL_ENV_VAR,
    show_default=True,
    help="SQLAlchemy database URL",
)
@click.option(
    "--alembic-dir",
    type=click.Path(),
    default=str(ALEMBIC_DIR),
    help="Path to Alembic directory",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=str(LOG_DIR),
    help="Path to log directory",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=2,
    show_default=True,
    help="Threads used for usage count updates",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, db_url, alembic_dir, log_dir, workers, verbose):
    """Salonbook Tagging CLI"""

    # Suppress Alembic INFO logging by default
    logging.getLogger("alembic").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["db_url"] = db_url
    ctx.obj["alembic_dir"] = Path(alembic_dir)
    ctx.obj["log_dir"] = Path(log_dir)
    ctx.obj["workers"] = workers
    ctx.obj["verbose"] = verbose


def get_db(ctx) -> SalonbookDB:
    """Get or create database instance from context."""
    if "db" not in ctx.obj:
        db = SalonbookDB(
            db_url=ctx.obj["db_url"],
            alembic_dir=ctx.obj["alembic_dir"],
            log_dir=ctx.obj["log_dir"],
            reconciler_workers=ctx.obj["workers"],
        )
        ctx.obj["db"] = db
        ctx.obj["logger"] = db.logger
        ctx.find_root().call_on_close(db.close)
    return ctx.obj["db"]


# Import and register command modules
# These imports must come after CLI group definition
from .setup import init  # noqa: E402
from .tags import tags  # noqa: E402
from .entity import entity  # noqa: E402
from .migrate import migrate  # noqa: E402
from .usage import usage  # noqa: E402

# Register top-level commands
cli.add_command(init)

# Register command groups
cli.add_command(tags)
cli.add_command(entity)
cli.add_command(migrate)
cli.add_command(usage)


if __name__ == "__main__":
    cli(obj={})
