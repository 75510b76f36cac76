"""``feedback-quality-db``: create, check and reset the feedback schema."""

import logging
from typing import Optional

import click

from .connection import DatabaseManager, init_database

logging.basicConfig(level=logging.INFO)


def _manager(ctx: click.Context) -> DatabaseManager:
    return DatabaseManager(ctx.obj.get('database_url'))


@click.group()
@click.option('--database-url', envvar='DATABASE_URL', help='Database connection URL')
@click.pass_context
def cli(ctx, database_url: Optional[str]):
    """Feedback Quality Analytics database management CLI."""
    ctx.ensure_object(dict)
    ctx.obj['database_url'] = database_url


@cli.command()
@click.pass_context
def init(ctx):
    """Create the users, feedback and category tables."""
    try:
        init_database(ctx.obj.get('database_url')).close()
    except Exception as e:
        raise click.ClickException(f"Failed to initialize database: {e}")
    click.echo("Database initialized successfully")


@cli.command()
@click.pass_context
def health(ctx):
    """Run a trivial query against the database."""
    db_manager = _manager(ctx)
    try:
        healthy = db_manager.health_check()
    finally:
        db_manager.close()

    if not healthy:
        raise click.ClickException("Database connection failed")
    click.echo("Database connection is healthy")


@cli.command()
@click.confirmation_option(prompt='Drop every feedback table and recreate it empty?')
@click.pass_context
def reset(ctx):
    """Drop and recreate all tables. Existing feedback is deleted."""
    db_manager = _manager(ctx)
    try:
        db_manager.drop_tables()
        db_manager.create_tables()
    except Exception as e:
        raise click.ClickException(f"Reset failed: {e}")
    finally:
        db_manager.close()
    click.echo("All tables dropped and recreated")


if __name__ == '__main__':
    cli()
