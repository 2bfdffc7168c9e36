"""
Credential portal CLI — run the dashboard workflow against a JSON fixture.

Usage:
    python -m portal_cli.cli dashboard u1 --fixture store.json
    python -m portal_cli.cli resolve c1 c2 c9 --fixture store.json
    python -m portal_cli.cli submit diploma.pdf --fixture store.json \\
        --subject-id u1 --subject-name "Asha Verma" --type degree --write

Without --fixture the built-in demo data is used.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from portal.aggregator import aggregate_credentials, sort_by_created_at
from portal.config import PortalConfig
from portal.content import InMemoryContentStore, gateway_url
from portal.dashboard import DashboardLoader
from portal.demo import get_demo_store
from portal.errors import PortalError, ReconciliationError, SubmissionValidationError
from portal.schema import Credential, CredentialDraft, ViewState
from portal.session import AuthSession, Identity
from portal.store import InMemoryDocumentStore
from portal.upload import submission_notice, submit_credential


console = Console()


def _load_store(fixture: str | None) -> InMemoryDocumentStore:
    if fixture is None:
        return get_demo_store()
    try:
        return InMemoryDocumentStore.from_file(fixture)
    except (json.JSONDecodeError, PortalError) as e:
        raise click.ClickException(f"Cannot load fixture {fixture}: {e}")


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _credential_table(credentials: list[Credential], gateway: str) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Institution", no_wrap=True)
    table.add_column("Year", no_wrap=True)
    table.add_column("Document", overflow="fold")
    for c in credentials:
        table.add_row(c.id, c.type, c.institution, str(c.year), gateway_url(c.cid, gateway))
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--timeout", type=float, default=None, help="Per-lookup timeout in seconds")
@click.pass_context
def main(ctx: click.Context, verbose: bool, timeout: float | None):
    """Credential portal — inspect dashboards and submit credentials."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    config = PortalConfig.from_env()
    if timeout is not None:
        config.lookup_timeout = timeout
    ctx.obj = config


@main.command()
@click.argument("user_id")
@click.option("--fixture", "-f", type=click.Path(exists=True), default=None, help="JSON store fixture")
@click.pass_obj
def dashboard(config: PortalConfig, user_id: str, fixture: str | None):
    """Show the dashboard for USER_ID."""
    store = _load_store(fixture)
    session = AuthSession(Identity(user_id=user_id))
    view = asyncio.run(DashboardLoader(store, config).load(session))

    if view.state == ViewState.GUEST:
        console.print(Panel(f"No profile for {user_id}; showing guest dashboard", style="yellow"))
        return

    name = (view.profile.display_name if view.profile else None) or "Student"
    console.print(Panel(f"Welcome, {name}!", style="bold blue"))

    for notice in view.notifications:
        console.print(f"  [red]! {notice.kind.value}[/red] ({notice.count or notice.detail})")

    if view.is_empty:
        console.print("  No credentials found")
        return

    console.print(_credential_table(view.credentials, config.ipfs_gateway))
    breakdown = ", ".join(f"{t}: {n}" for t, n in view.stats.by_type.items())
    console.print(f"\n  Total: {view.stats.total}  |  {breakdown}")


@main.command()
@click.argument("credential_ids", nargs=-1)
@click.option("--fixture", "-f", type=click.Path(exists=True), default=None, help="JSON store fixture")
@click.pass_obj
def resolve(config: PortalConfig, credential_ids: tuple[str, ...], fixture: str | None):
    """Resolve CREDENTIAL_IDS concurrently and report what was found."""
    store = _load_store(fixture)
    aggregate = asyncio.run(aggregate_credentials(store, list(credential_ids), config))

    if aggregate.credentials:
        console.print(_credential_table(sort_by_created_at(aggregate.credentials), config.ipfs_gateway))
    else:
        console.print("No credentials found")

    for cid in aggregate.missing_ids:
        console.print(f"  [yellow]- {cid}: not found[/yellow]")
    for cid in aggregate.failed_ids:
        console.print(f"  [red]✗ {cid}: lookup failed[/red]")

    console.print(f"\n  Resolved: {len(aggregate.credentials)}/{aggregate.requested}")


@main.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--fixture", "-f", type=click.Path(exists=True), default=None, help="JSON store fixture")
@click.option("--subject-id", required=True, help="Profile id of the student")
@click.option("--subject-name", required=True, help="Student name as printed on the credential")
@click.option("--type", "credential_type", required=True, help="degree, certificate, diploma, ...")
@click.option("--institution", default="", help="Issuing institution")
@click.option("--write/--no-write", default=False, help="Save the updated store back to --fixture")
@click.pass_obj
def submit(
    config: PortalConfig,
    document: str,
    fixture: str | None,
    subject_id: str,
    subject_name: str,
    credential_type: str,
    institution: str,
    write: bool,
):
    """Submit DOCUMENT as a new credential for a student."""
    store = _load_store(fixture)
    path = Path(document)
    draft = CredentialDraft(
        type=credential_type,
        subject_name=subject_name,
        subject_id=subject_id,
        institution=institution,
        filename=path.name,
        document=path.read_bytes(),
    )

    try:
        ack = asyncio.run(submit_credential(draft, store, InMemoryContentStore(), config))
    except SubmissionValidationError as e:
        console.print(f"[red]✗ Invalid fields: {', '.join(e.fields)}[/red]")
        sys.exit(2)
    except ReconciliationError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    except PortalError as e:
        notice = submission_notice(e)
        console.print(f"[red]✗ Submission failed: {notice.detail}[/red]")
        sys.exit(1)

    notice = submission_notice()
    console.print(f"[green]✓ Credential submitted[/green] ({notice.kind.value})")
    console.print(f"  ID:   {ack.credential_id}")
    console.print(f"  CID:  {ack.cid}")
    console.print(f"  View: {gateway_url(ack.cid, config.ipfs_gateway)}")

    if write:
        if fixture is None:
            raise click.ClickException("--write requires --fixture")
        Path(fixture).write_text(json.dumps(store.dump(), indent=2, default=_json_default))
        console.print(f"  Saved store to {fixture}")


if __name__ == "__main__":
    main()
