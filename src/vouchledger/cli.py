"""Command-line interface for VouchLedger.

This module provides the CLI commands for bootstrapping and administering
the invitation and attestation engine.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable, NoReturn

import click

from vouchledger import __version__
from vouchledger.core.config import get_settings
from vouchledger.core.context import set_current_actor_id
from vouchledger.core.logging import LoggingContext, configure_logging
from vouchledger.domain.entities import (
    BOT_ATTESTATION_TYPES,
    HUMAN_ATTESTATION_TYPES,
    EntityType,
)
from vouchledger.domain.exceptions import AuthorizationError, NotFoundError, VouchLedgerError

ATTESTATION_TYPE_CHOICES = [t.value for t in HUMAN_ATTESTATION_TYPES + BOT_ATTESTATION_TYPES]


def _run(action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Run an async action with an engine bound to a fresh session.

    Engine errors are printed and turned into exit code 1.
    """
    from vouchledger.application.services import IntegrityEngine
    from vouchledger.infrastructure.persistence.database import (
        close_database,
        get_db_manager,
    )

    settings = get_settings()
    configure_logging(settings)

    async def runner() -> Any:
        db = get_db_manager()
        try:
            async with db.session() as session:
                engine = IntegrityEngine.from_session(session, settings)
                return await action(engine)
        finally:
            await close_database()

    try:
        with LoggingContext(correlation_id=f"cli_{uuid.uuid4().hex[:12]}"):
            return asyncio.run(runner())
    except VouchLedgerError as e:
        click.echo(f"Error: {e.message}", err=True)
        raise SystemExit(1)


async def _bind_actor(engine: Any, name: str) -> int:
    """Resolve ``--actor`` and bind it as the current actor."""
    actor_id = await engine.identities.resolve_user_id(name)
    if actor_id is None:
        raise AuthorizationError(f"Unknown actor '{name}'")
    set_current_actor_id(actor_id)
    return engine.identities.current_actor_id()


async def _require_identity(engine: Any, name: str) -> int:
    user_id = await engine.identities.resolve_user_id(name)
    if user_id is None:
        raise NotFoundError(f"Identity '{name}' does not exist")
    return user_id


@click.group()
@click.version_option(version=__version__, prog_name="VouchLedger")
def cli() -> None:
    """VouchLedger - invitation and attestation integrity engine.

    Single-use invites, tamper-protected attestations and
    invited-by ancestry for closed communities.
    """


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database and claim the system identity.

    Creates all database tables in development and testing. In production,
    use migrations instead.
    """
    from vouchledger.infrastructure.persistence.database import (
        close_database,
        init_database,
    )

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        try:
            await init_database()
            click.echo("Database initialized successfully.")
        finally:
            await close_database()

    asyncio.run(initialize())


@cli.command()
@click.option("--name", default=None, help="Reserved name (defaults to configuration)")
def ensure_system_identity(name: str | None) -> None:
    """Claim the reserved system identity if it is not claimed yet."""

    async def action(engine: Any) -> Any:
        return await engine.guard.ensure(name)

    outcome = _run(action)
    if outcome.is_ready:
        click.echo(f"System identity ready: {outcome.name} (id {outcome.identity.id})")
    else:
        click.echo(
            f"WARNING: '{outcome.name}' is held by an ordinary identity; "
            "protected records cannot be authored until this is resolved.",
            err=True,
        )


@cli.command()
@click.option("--actor", required=True, help="Name of the inviting identity")
@click.option(
    "--entity-type",
    type=click.Choice([e.value for e in EntityType]),
    default=EntityType.HUMAN.value,
    show_default=True,
)
@click.option("--expire-days", type=int, default=None, help="0 = never expires")
@click.option("--invitee", default=None, help="Intended recipient name")
@click.option(
    "--relationship",
    type=click.Choice(ATTESTATION_TYPE_CHOICES),
    default=None,
    help="How you know the invitee",
)
@click.option("--notes", default=None)
def create_invite(
    actor: str,
    entity_type: str,
    expire_days: int | None,
    invitee: str | None,
    relationship: str | None,
    notes: str | None,
) -> None:
    """Create a single-use invite and print its code and link."""

    async def action(engine: Any) -> tuple[Any, str]:
        inviter_id = await _bind_actor(engine, actor)
        invite = await engine.ledger.create_invite(
            inviter_id,
            entity_type,
            expire_days=expire_days,
            invitee_name=invitee,
            relationship_type=relationship,
            notes=notes,
        )
        await engine.commit()
        return invite, engine.ledger.build_invite_url(invite.code)

    invite, url = _run(action)
    expires = invite.expires_at.strftime("%Y-%m-%d") if invite.expires_at else "never"
    click.echo(
        f"Invite created\n"
        f"  ID:      {invite.id}\n"
        f"  Code:    {invite.code}\n"
        f"  Link:    {url}\n"
        f"  Expires: {expires}"
    )


@cli.command()
@click.argument("code")
def validate_invite(code: str) -> None:
    """Check whether an invite code can still be used."""

    async def action(engine: Any) -> Any:
        return await engine.ledger.validate(code)

    validation = _run(action)
    click.echo(validation.status.value)
    if not validation.is_valid:
        raise SystemExit(1)


@cli.command()
@click.argument("invite_id", type=int)
@click.option("--actor", required=True, help="Inviter or an elevated identity")
def revoke_invite(invite_id: int, actor: str) -> None:
    """Revoke an unused invite."""

    async def action(engine: Any) -> bool:
        actor_id = await _bind_actor(engine, actor)
        invite = await engine.ledger.get_invite(invite_id)
        if invite is None:
            raise NotFoundError(f"Invite {invite_id} does not exist")
        if invite.inviter_id != actor_id and not await engine.identities.is_elevated_role(
            actor_id
        ):
            raise AuthorizationError("Only the inviter or an elevated identity may revoke")
        revoked = await engine.ledger.revoke(invite_id)
        await engine.commit()
        return revoked

    if _run(action):
        click.echo(f"Invite {invite_id} revoked.")
    else:
        click.echo(f"Invite {invite_id} was already used and cannot be revoked.", err=True)
        raise SystemExit(1)


@cli.command()
@click.option("--inviter", default=None, help="Only invites created by this identity")
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
def list_invites(inviter: str | None, limit: int, offset: int) -> None:
    """List invites, newest first."""

    async def action(engine: Any) -> list[tuple[Any, str]]:
        if inviter is not None:
            invites = await engine.ledger.list_invites_by_inviter(
                await _require_identity(engine, inviter)
            )
        else:
            invites = await engine.ledger.list_invites(limit=limit, offset=offset)
        return [(invite, engine.ledger.invite_status(invite).value) for invite in invites]

    rows = _run(action)
    if not rows:
        click.echo("No invites.")
        return
    for invite, state in rows:
        click.echo(
            f"{invite.id:>5}  {state:<8} inviter={invite.inviter_id} "
            f"used_by={invite.used_by_id or '-'} invitee={invite.invitee_name or '-'} "
            f"type={invite.entity_type.value}/{invite.relationship_type.value} "
            f"created={invite.created_at.strftime('%Y-%m-%d')}"
        )


@cli.command()
@click.argument("name")
def chain(name: str) -> None:
    """Show who invited whom, back to the genesis ancestor."""

    async def action(engine: Any) -> tuple[Any, list[str]]:
        user_id = await _require_identity(engine, name)
        resolved = await engine.resolver.resolve_chain(user_id)
        names = []
        for member_id in resolved:
            identity = await engine.identities.get_identity(member_id)
            names.append(identity.name if identity else f"#{member_id}")
        return resolved, names

    resolved, names = _run(action)
    click.echo(" <- ".join(names))
    if resolved.cycle_detected:
        click.echo(f"WARNING: {resolved.integrity_error.message}", err=True)


@cli.command()
@click.argument("name")
@click.option("--invite", "invite_code", default=None, help="Invite code")
@click.option("--creator", default=None, help="Elevated identity creating the account")
@click.option(
    "--role",
    default="member",
    show_default=True,
    help="Role for the new identity (needs an elevated --creator unless member)",
)
def register(name: str, invite_code: str | None, creator: str | None, role: str) -> None:
    """Register a new identity with an invite code."""

    async def action(engine: Any) -> Any:
        creator_id = await _bind_actor(engine, creator) if creator else None
        return await engine.registration.register(
            name, invite_code=invite_code, creator_id=creator_id, role=role
        )

    result = _run(action)
    click.echo(f"Registered {result.identity.name} (id {result.identity.id})")
    if result.origin_attestation is not None:
        click.echo(f"Invite record: {result.origin_attestation.page_path}")


@cli.command()
@click.argument("name")
@click.option("--role", default=None, help="Elevated role (defaults to the first configured one)")
def create_admin(name: str, role: str | None) -> None:
    """Create an elevated identity without an invite.

    Use this once on a fresh deployment so there is someone to send the
    first invites.
    """

    async def action(engine: Any) -> Any:
        return await engine.registration.create_administrator(name, role)

    identity = _run(action)
    click.echo(f"Administrator created: {identity.name} (id {identity.id}, role {identity.role})")


@cli.command()
@click.argument("subject")
@click.option("--actor", required=True, help="Name of the attesting identity")
@click.option(
    "--type",
    "attestation_type",
    type=click.Choice(ATTESTATION_TYPE_CHOICES),
    required=True,
)
@click.option("--text", default="", help="Freeform attestation text")
def attest(subject: str, actor: str, attestation_type: str, text: str) -> None:
    """Vouch for another identity."""

    async def action(engine: Any) -> Any:
        attester_id = await _bind_actor(engine, actor)
        record = await engine.registry.create_attestation(
            attester_id, subject, attestation_type, text
        )
        await engine.commit()
        return record

    record = _run(action)
    click.echo(f"Attestation created: {record.page_path}")


@cli.command()
@click.argument("subject")
@click.option("--attester", required=True, help="Name of the identity that wrote the record")
@click.option("--actor", required=True, help="Name of the editing identity")
@click.option(
    "--type",
    "attestation_type",
    type=click.Choice(ATTESTATION_TYPE_CHOICES),
    default=None,
)
@click.option("--text", default=None)
def edit_attestation(
    subject: str,
    attester: str,
    actor: str,
    attestation_type: str | None,
    text: str | None,
) -> None:
    """Edit an attestation (attester or elevated identities only)."""

    async def action(engine: Any) -> Any:
        editor_id = await _bind_actor(engine, actor)
        record = await engine.registry.edit_attestation(
            editor_id,
            await _require_identity(engine, subject),
            await _require_identity(engine, attester),
            attestation_type=attestation_type,
            freeform_text=text,
        )
        await engine.commit()
        return record

    record = _run(action)
    click.echo(f"Attestation updated: {record.page_path}")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.option("--user", "only_name", default=None, help="Process only this identity")
@click.option("--exclude-bots", is_flag=True, help="Skip identities with the bot role")
def bootstrap_genesis(dry_run: bool, only_name: str | None, exclude_bots: bool) -> None:
    """Create genesis records for identities that predate invites."""

    async def action(engine: Any) -> Any:
        return await engine.genesis.run(
            dry_run=dry_run, only_name=only_name, exclude_bots=exclude_bots
        )

    report = _run(action)
    if dry_run:
        click.echo("DRY RUN - no changes were made\n")
    verb = "WOULD CREATE" if dry_run else "CREATED"
    for path in report.created:
        click.echo(f"{verb}: {path}")
    for name, reason in report.skipped:
        click.echo(f"SKIP ({reason}): {name}")
    for path in report.failed:
        click.echo(f"FAILED: {path}")
    click.echo(
        f"\nTotal identities: {report.total}\n"
        f"Created: {len(report.created)}\n"
        f"Skipped: {len(report.skipped)}\n"
        f"Failed: {len(report.failed)}"
    )


@cli.command()
def info() -> None:
    """Display VouchLedger configuration."""
    settings = get_settings()

    click.echo(f"""
VouchLedger v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:     {settings.environment}
  External URL:    {settings.external_url}

Database:
  URL:             {settings.database_url}
  Echo:            {settings.db_echo}

Invites:
  Expire Days:     {settings.invite_expire_days}
  Max Expire Days: {settings.invite_max_expire_days}
  Code Bytes:      {settings.invite_code_bytes}
  Required:        {settings.invites_required}

Identities:
  System Identity: {settings.system_identity_name}
  Elevated Roles:  {', '.join(settings.elevated_roles)}
  Invalid Types:   {settings.invalid_attestation_type_policy}

Logging:
  Level:           {settings.log_level}
  Format:          {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `vouchledger` command is run
    or when using `python -m vouchledger`.
    """
    cli()


if __name__ == "__main__":
    main()
