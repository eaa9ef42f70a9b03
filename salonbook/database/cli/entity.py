"""
Entity Tagging Commands
-----------------------

Read and change the tags of one entity. Entity types accept plural and
alias forms (``services``, ``companyproduct``).

Commands:
    - show: List the tags of an entity
    - set: Replace the tags of an entity
    - add: Add tags to an entity
    - remove: Remove tags from an entity

Usage:
    tagdb entity set service svc1 t1 t2
    tagdb entity remove service svc1 t1
    tagdb entity show services svc1
"""
import click

from salonbook.core.exceptions import DatabaseError, ValidationError
from salonbook.core.logging_manager import handle_cli_error
from salonbook.database.models import EntityType
from . import get_db


class EntityTypeParam(click.ParamType):
    """Click parameter accepting any alias of an EntityType."""

    name = "entity_type"

    def convert(self, value, param, ctx):
        if isinstance(value, EntityType):
            return value
        entity_type = EntityType.normalize(value)
        if entity_type is None:
            self.fail(
                f"{value!r} is not a taggable entity type "
                f"({', '.join(EntityType.choices())})",
                param,
                ctx,
            )
        return entity_type


ENTITY_TYPE = EntityTypeParam()


def _echo_delta(delta) -> None:
    if delta.added:
        click.echo(f"  ➕ Added: {', '.join(delta.added)}")
    if delta.removed:
        click.echo(f"  ➖ Removed: {', '.join(delta.removed)}")
    if not delta.has_changes:
        click.echo("  No changes")


def _wait_for_usage_counts(db) -> None:
    if not db.reconciler.drain(timeout=30):
        click.echo("⚠️  Usage count updates still pending", err=True)


@click.group()
@click.pass_context
def entity(ctx: click.Context) -> None:
    """Read and change the tags of an entity."""
    pass


@entity.command("show")
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.pass_context
def entity_show(ctx, entity_type, entity_id):
    """List the tags of an entity."""
    try:
        db = get_db(ctx)
        entity_tags = db.entity_tags.get_entity_tags(entity_type, entity_id)

        click.echo(f"\n🏷️  {entity_type.display_name} {entity_id}")
        if not entity_tags:
            click.echo("  No tags")
        for tag in entity_tags:
            click.echo(f"  • {tag.id}  {tag.name}")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx, e, "entity_show",
            additional_context={"entity": f"{entity_type.value}:{entity_id}"},
        )


@entity.command("set")
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.argument("tag_ids", nargs=-1)
@click.pass_context
def entity_set(ctx, entity_type, entity_id, tag_ids):
    """Replace all tags of an entity (no TAG_IDS clears them)."""
    try:
        db = get_db(ctx)
        delta = db.entity_tags.set_entity_tags(entity_type, entity_id, list(tag_ids))
        click.echo(f"✅ Tags set on {entity_type.value}:{entity_id}")
        _echo_delta(delta)
        _wait_for_usage_counts(db)

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx, e, "entity_set",
            additional_context={"entity": f"{entity_type.value}:{entity_id}"},
        )


@entity.command("add")
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.argument("tag_ids", nargs=-1, required=True)
@click.pass_context
def entity_add(ctx, entity_type, entity_id, tag_ids):
    """Add tags to an entity."""
    try:
        db = get_db(ctx)
        delta = db.entity_tags.add_entity_tags(entity_type, entity_id, list(tag_ids))
        click.echo(f"✅ Tags added to {entity_type.value}:{entity_id}")
        _echo_delta(delta)
        _wait_for_usage_counts(db)

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx, e, "entity_add",
            additional_context={"entity": f"{entity_type.value}:{entity_id}"},
        )


@entity.command("remove")
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.argument("tag_ids", nargs=-1, required=True)
@click.pass_context
def entity_remove(ctx, entity_type, entity_id, tag_ids):
    """Remove tags from an entity."""
    try:
        db = get_db(ctx)
        delta = db.entity_tags.remove_entity_tags(entity_type, entity_id, list(tag_ids))
        click.echo(f"✅ Tags removed from {entity_type.value}:{entity_id}")
        _echo_delta(delta)
        _wait_for_usage_counts(db)

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(
            ctx, e, "entity_remove",
            additional_context={"entity": f"{entity_type.value}:{entity_id}"},
        )
