"""
CLI interface for the batch mailer.

Commands:
    send               — Deliver the configured message to the next batch
    init-db            — Create the recipient table
    import-recipients  — Add pending recipients from a file
    stats              — Show pending and delivered totals
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click

from batch_mailer import __version__
from batch_mailer.dispatch.config import DispatchConfig, load_dispatch_config
from batch_mailer.dispatch.runner import DispatchRunner
from batch_mailer.errors import ConfigError, StorageError
from batch_mailer.logging_config import setup_logging
from batch_mailer.store.recipients import RecipientStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="batch-mailer")
@click.option("--config", "config_path", default="dispatch.json", show_default=True,
              help="Path to the dispatch config JSON file.")
@click.option("--db", default=None, help="Database URL; overrides the config file.")
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.pass_context
def cli(ctx: click.Context, config_path: str, db: Optional[str], log_level: str) -> None:
    """Batch Mailer: send one message to pending recipients and record each delivery."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["db_url"] = db


def _load_config(ctx: click.Context) -> DispatchConfig:
    try:
        return load_dispatch_config(ctx.obj["config_path"])
    except ConfigError as e:
        raise click.ClickException(str(e))


def _open_store(ctx: click.Context, config: Optional[DispatchConfig] = None) -> RecipientStore:
    db_url = ctx.obj["db_url"]
    if db_url:
        return RecipientStore(db_url, pool=config.pool if config else None)
    config = config or _load_config(ctx)
    return RecipientStore(config.database_url, pool=config.pool)


# ---------------------------------------------------------------------------
# send
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--batch", "-b", required=True, type=int,
              help="Maximum number of recipients to deliver to in this run.")
@click.option("--dry-run", is_flag=True, help="List the selected recipients without sending.")
@click.pass_context
def send(ctx: click.Context, batch: int, dry_run: bool) -> None:
    """Deliver the configured message to the next batch of pending recipients."""
    config = _load_config(ctx)
    store = _open_store(ctx, config)
    try:
        store.ping()
        try:
            runner = DispatchRunner.from_config(config, store=store)
        except ConfigError as e:
            raise click.ClickException(str(e))

        if dry_run:
            recipients = runner.preview(batch)
            click.echo(json.dumps({
                "status": "dry_run",
                "count": len(recipients),
                "recipients": [r.email for r in recipients],
            }, indent=2))
            return

        result = runner.run(batch)
    except StorageError as e:
        logger.error("Batch aborted: %s", e)
        raise click.ClickException(str(e))
    finally:
        store.close()

    payload = {"status": "Emails sent successfully"}
    payload.update(result.to_dict())
    click.echo(json.dumps(payload, indent=2))


# ---------------------------------------------------------------------------
# init-db
# ---------------------------------------------------------------------------

@cli.command(name="init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the recipient table if it does not exist."""
    store = _open_store(ctx)
    try:
        store.create_tables()
    except StorageError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()
    click.echo("Recipient table ready.")


# ---------------------------------------------------------------------------
# import-recipients
# ---------------------------------------------------------------------------

@cli.command(name="import-recipients")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_recipients(ctx: click.Context, source: Path) -> None:
    """Add one pending recipient per non-blank line of SOURCE."""
    emails = [
        line.strip()
        for line in source.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    store = _open_store(ctx)
    try:
        added = store.add_recipients(emails)
    except StorageError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()
    click.echo(f"Imported {added} recipients.")


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------

@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show recipient totals."""
    store = _open_store(ctx)
    try:
        stats_data = store.get_stats()
    except StorageError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()

    click.echo("=== Recipient Statistics ===")
    click.echo(f"Total:     {stats_data['total']}")
    click.echo(f"Delivered: {stats_data['delivered']}")
    click.echo(f"Pending:   {stats_data['pending']}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
