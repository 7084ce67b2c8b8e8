"""CLI tools for KindWorld verification administration."""

import asyncio

import click
from sqlalchemy.exc import SQLAlchemyError

from kindworld.db.enums import Role
from kindworld.db.models import Account
from kindworld.db.session import SessionLocal


@click.group()
def cli():
    """KindWorld CLI tools."""
    pass


@cli.command()
def init_db():
    """Apply Alembic migrations up to head (idempotent)."""
    from kindworld.core.migrations import upgrade_to_head

    status = upgrade_to_head()
    click.echo(f"✓ Database schema at revision {', '.join(status.current_heads)}")


@cli.command()
@click.option("--id", "account_id", required=True, help="Account id from the identity provider")
@click.option(
    "--role",
    required=True,
    type=click.Choice([r.value for r in Role]),
    help="Account role",
)
@click.option("--email", default=None, help="Email address for notifications")
@click.option("--name", "display_name", default="", help="Display name")
@click.option("--organization", "organization_name", default=None, help="Organization name (NGOs)")
def create_account(
    account_id: str,
    role: str,
    email: str | None,
    display_name: str,
    organization_name: str | None,
):
    """
    Create an account known to the verification core.

    Example:
        python -m kindworld.cli create-account --id A1 --role admin --email admin@kindworld.org
    """
    db = SessionLocal()
    try:
        if db.get(Account, account_id):
            click.echo(f"❌ Account '{account_id}' already exists")
            return

        account = Account(
            id=account_id,
            role=role,
            email=email.lower() if email else None,
            display_name=display_name,
            organization_name=organization_name,
        )
        db.add(account)
        db.commit()
        click.echo(f"✓ Created {role} account: {account_id}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--batch-size", default=None, type=int, help="Max deliveries to claim")
def process_queue(batch_size: int | None):
    """Process one batch of due email deliveries and exit."""
    from kindworld.services.email_sender import select_sender
    from kindworld.worker import make_worker_id, run_once

    selection = select_sender()
    if selection.dry_run:
        click.echo("→ RESEND_API_KEY not set, emails will only be logged")

    summary = asyncio.run(run_once(selection.sender, make_worker_id(0), batch_size))
    click.echo(
        f"✓ Claimed {summary.claimed}: sent={summary.sent} retried={summary.retried} "
        f"failed={summary.failed} cancelled={summary.cancelled} skipped={summary.skipped}"
    )


@cli.command()
@click.option("--concurrency", default=None, type=int, help="Number of worker loops")
@click.option("--poll-interval", default=None, type=int, help="Idle sleep in seconds")
def run_worker(concurrency: int | None, poll_interval: int | None):
    """Run the delivery worker until interrupted."""
    from kindworld import worker

    try:
        asyncio.run(worker.run_worker(concurrency=concurrency, poll_interval=poll_interval))
    except KeyboardInterrupt:
        click.echo("Worker stopped")


if __name__ == "__main__":
    cli()
