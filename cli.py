#!/usr/bin/env python3
"""
CLI tool for local story management.

Provides commands for creating the database and accounts, listing and
exporting stories, inspecting the illustrated layout of a story and
verifying provider configuration without going through the HTTP API.
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

from src.bedtime.config import load_config
from src.bedtime.document import compose_story
from src.bedtime.exports import EXTENSIONS, export_filename, render_story
from src.bedtime.providers.factory import create_image_provider, create_provider
from src.bedtime.services import StoryService, StoryValidationService
from src.bedtime.utils import create_story_repository
from src.bedtime.utils.db_storage import UserStorage, init_database, resolve_db_path
from src.bedtime.utils.errors import APIError

# Load environment variables
load_dotenv()


def _repository(db_path: Optional[str]):
    return create_story_repository(db_path or os.getenv("DATABASE_PATH"))


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option('--db', 'db_path', type=click.Path(dir_okay=False), envvar='DATABASE_PATH',
              help='SQLite database file (default: DATABASE_PATH or data/bedtime.db)')
@click.pass_context
def cli(ctx: click.Context, db_path: Optional[str]) -> None:
    """Bedtime Stories - local story management."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


@cli.command('init-db')
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database tables."""
    path = resolve_db_path(ctx.obj["db_path"])
    init_database(path)
    click.echo(f"✓ Database ready at {path}")


@cli.command('create-user')
@click.argument('email')
@click.option('--name', type=str, help='Display name')
@click.password_option(help='Account password (prompted if omitted)')
@click.pass_context
def create_user(ctx: click.Context, email: str, name: Optional[str], password: str) -> None:
    """Create an account and print its id."""
    try:
        fields = StoryValidationService().validate_registration(
            {"email": email, "password": password, "name": name}
        )
    except APIError as e:
        _fail(e.message)

    user = UserStorage(ctx.obj["db_path"]).create_user(fields["email"], fields["password"], fields["name"])
    if user is None:
        _fail(f"An account for '{fields['email']}' already exists.")
    click.echo(f"✓ Created user {user['id']} ({user['email']})")


@cli.command('list-stories')
@click.option('--user-id', required=True, help='Owner of the stories')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format (default: table)')
@click.pass_context
def list_stories(ctx: click.Context, user_id: str, output_format: str) -> None:
    """List a user's stories, newest first."""
    try:
        stories = StoryService(_repository(ctx.obj["db_path"])).list_stories(user_id)
    except APIError as e:
        _fail(e.message)

    if output_format == 'json':
        click.echo(json.dumps([story.to_dict() for story in stories], indent=2))
        return

    if not stories:
        click.echo("No stories found.")
        return

    click.echo(f"\n{'ID':<34} {'Created':<28} {'Images':<8} {'Title':<40}")
    click.echo("-" * 110)
    for story in stories:
        click.echo(f"{story.id:<34} {story.created_at:<28} {len(story.images):<8} {story.title[:40]:<40}")
    click.echo(f"\nTotal: {len(stories)} stories")


@cli.command('show-blocks')
@click.argument('story_id')
@click.option('--user-id', required=True, help='Owner of the story')
@click.pass_context
def show_blocks(ctx: click.Context, story_id: str, user_id: str) -> None:
    """Print the interleaved text and image layout of a story."""
    try:
        story = StoryService(_repository(ctx.obj["db_path"])).get_story(story_id, user_id)
    except APIError as e:
        _fail(e.message)

    click.echo(f"# {story.title}\n")
    for block in compose_story(story):
        if block.kind == "image":
            click.echo(f"  [image {block.image_index}] {block.url[:60]}")
        else:
            preview = block.text if len(block.text) <= 70 else block.text[:67] + "..."
            click.echo(f"  [text {block.paragraph_index}] {preview}")


@cli.command('export')
@click.argument('story_id')
@click.option('--user-id', required=True, help='Owner of the story')
@click.option('--format', 'format_type', type=click.Choice(['pdf', 'docx', 'epub', 'markdown', 'txt']),
              default='pdf', help='Export format (default: pdf)')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output file path (default: auto-generated)')
@click.pass_context
def export_story(ctx: click.Context, story_id: str, user_id: str, format_type: str, output: Optional[str]) -> None:
    """Export a story to a file."""
    try:
        story = StoryService(_repository(ctx.obj["db_path"])).get_story(story_id, user_id)
        rendered = render_story(story.to_dict(), format_type)
    except APIError as e:
        _fail(e.message)

    output_path = Path(output or export_filename(story.to_dict(), format_type))
    if isinstance(rendered, str):
        output_path.write_text(rendered, encoding='utf-8')
    else:
        output_path.write_bytes(rendered)
    click.echo(f"✓ Exported story '{story_id}' to '{output_path}' ({EXTENSIONS[format_type].upper()})")


def _check_text_provider(config) -> Tuple[bool, str]:
    if not config["GOOGLE_API_KEY"]:
        return False, "GOOGLE_API_KEY not set (story generation will answer 503)"
    try:
        client = create_provider(
            api_key=config["GOOGLE_API_KEY"],
            model_name=config["LLM_MODEL"],
            temperature=config["LLM_TEMPERATURE"],
        )
    except ValueError as e:
        return False, f"Text provider configuration error: {e}"
    if client.check_availability():
        return True, f"Gemini API ready (model: {client.model_name})"
    return False, f"Gemini API key set but model '{client.model_name}' is not available"


def _check_image_provider(config) -> Tuple[bool, str]:
    try:
        create_image_provider(api_key=config["FIREWORKS_API_KEY"], timeout=config["IMAGE_TIMEOUT_SECONDS"])
    except ValueError as e:
        return False, f"{e} (illustrations will use the placeholder)"
    return True, "Fireworks image provider configured"


@cli.command('check-setup')
@click.pass_context
def check_setup(ctx: click.Context) -> None:
    """Verify database and provider configuration."""
    try:
        config = load_config()
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")

    checks = []
    try:
        path = resolve_db_path(ctx.obj["db_path"] or config["DATABASE_PATH"])
        init_database(path)
        checks.append((True, f"Database writable at {path}"))
    except Exception as e:
        checks.append((False, f"Database error: {e}"))
    checks.append(_check_text_provider(config))
    checks.append(_check_image_provider(config))

    for ok, message in checks:
        click.echo(f"{'✓' if ok else '✗'} {message}")

    if not all(ok for ok, _ in checks):
        sys.exit(1)


if __name__ == '__main__':
    cli()
