"""
Tag Management Commands
-----------------------

Commands:
    - list: List tags with pagination, search and active filter
    - show: Display one tag and the entities using it
    - create: Create a tag
    - update: Change a tag's name, description, color or icon
    - deactivate: Hide a tag while keeping its associations
    - delete: Delete an unused tag

Usage:
    tagdb tags create "VIP" --color "#F59E0B"
    tagdb tags list --search vip
    tagdb tags delete <tag_id>
"""
import click

from salonbook.core.exceptions import DatabaseError, ValidationError
from salonbook.core.logging_manager import handle_cli_error
from . import get_db


def _format_tag(tag) -> str:
    state = "" if tag.is_active else " (inactive)"
    return f"  • {tag.id}  {tag.name}  {tag.color}  used {tag.usage_count}x{state}"


@click.group()
@click.pass_context
def tags(ctx: click.Context) -> None:
    """Manage the tag vocabulary."""
    pass


@tags.command("list")
@click.option("--search", default="", help="Match name or description")
@click.option("--limit", type=int, default=12, show_default=True, help="Page size (max 100)")
@click.option("--offset", type=int, default=0, show_default=True, help="Rows to skip")
@click.option(
    "--active/--inactive",
    "is_active",
    default=None,
    help="Only active or only inactive tags",
)
@click.pass_context
def tags_list(ctx, search, limit, offset, is_active):
    """List tags, most used first."""
    try:
        db = get_db(ctx)
        page = db.tags.get_paginated(
            limit=limit, offset=offset, search=search, is_active=is_active
        )

        click.echo(
            f"\n🏷️  Tags ({page.total}) - page {page.current_page}/{page.total_pages}"
        )
        click.echo("=" * 50)
        if not page.tags:
            click.echo("  No tags found")
        for tag in page.tags:
            click.echo(_format_tag(tag))

    except DatabaseError as e:
        handle_cli_error(ctx, e, "tags_list")


@tags.command("show")
@click.argument("tag_id")
@click.pass_context
def tags_show(ctx, tag_id):
    """Display a tag and the entities carrying it."""
    try:
        db = get_db(ctx)
        tag = db.tags.get_by_id(tag_id)
        if tag is None:
            click.echo(f"❌ Tag not found: {tag_id}", err=True)
            ctx.exit(1)

        click.echo(f"\n🏷️  {tag.name} ({tag.id})")
        if tag.description:
            click.echo(f"   {tag.description}")
        click.echo(f"   Color: {tag.color}")
        if tag.icon:
            click.echo(f"   Icon: {tag.icon}")
        click.echo(f"   Active: {'yes' if tag.is_active else 'no'}")
        click.echo(f"   Usage count: {tag.usage_count}")

        entities = db.entity_tags.get_entities_for_tag(tag.id)
        click.echo(f"\n📊 Associations ({len(entities)}):")
        for entity_type, entity_id in entities:
            click.echo(f"  • {entity_type.value}:{entity_id}")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "tags_show", additional_context={"tag_id": tag_id})


@tags.command("create")
@click.argument("name")
@click.option("--description", default=None, help="Tag description")
@click.option("--color", default=None, help="Hex color (#RGB or #RRGGBB)")
@click.option("--icon", default=None, help="Icon name")
@click.pass_context
def tags_create(ctx, name, description, color, icon):
    """Create a new tag."""
    try:
        db = get_db(ctx)
        tag = db.tags.create(
            {"name": name, "description": description, "color": color, "icon": icon}
        )
        click.echo(f"✅ Created tag {tag.name} ({tag.id})")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "tags_create", additional_context={"name": name})


@tags.command("update")
@click.argument("tag_id")
@click.option("--name", default=None, help="New name")
@click.option("--description", default=None, help="New description")
@click.option("--color", default=None, help="New hex color")
@click.option("--icon", default=None, help="New icon name")
@click.option("--active/--inactive", "is_active", default=None, help="Set active flag")
@click.pass_context
def tags_update(ctx, tag_id, name, description, color, icon, is_active):
    """Update a tag's display fields."""
    changes = {
        key: value
        for key, value in {
            "name": name,
            "description": description,
            "color": color,
            "icon": icon,
            "is_active": is_active,
        }.items()
        if value is not None
    }
    if not changes:
        click.echo("⚠️  Nothing to update")
        return

    try:
        db = get_db(ctx)
        tag = db.tags.update(tag_id, changes)
        click.echo(f"✅ Updated tag {tag.name} ({tag.id})")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "tags_update", additional_context={"tag_id": tag_id})


@tags.command("deactivate")
@click.argument("tag_id")
@click.pass_context
def tags_deactivate(ctx, tag_id):
    """Deactivate a tag (associations are kept)."""
    try:
        db = get_db(ctx)
        tag = db.tags.deactivate(tag_id)
        click.echo(f"✅ Deactivated tag {tag.name} ({tag.id})")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "tags_deactivate", additional_context={"tag_id": tag_id})


@tags.command("delete")
@click.argument("tag_id")
@click.pass_context
def tags_delete(ctx, tag_id):
    """Delete a tag that nothing uses."""
    try:
        db = get_db(ctx)
        db.tags.delete(tag_id)
        click.echo(f"✅ Deleted tag {tag_id}")

    except (DatabaseError, ValidationError) as e:
        handle_cli_error(ctx, e, "tags_delete", additional_context={"tag_id": tag_id})
