"""
actiongate CLI — actiongate list | yes | no | show | clean | history | stats | propose
"""
import asyncio
import functools
import json
import os
from datetime import timedelta

import click

from actiongate.core.exceptions import ActionGateError
from actiongate.core.types import ApprovalStatus
from actiongate.interfaces.renderers import format_approval, format_approval_message, format_history

DEFAULT_PROPOSE_COMMAND = "echo 'No commands specified'"


def _default_actor() -> str:
    return f"cli:{os.environ.get('USER') or 'unknown'}"


def _settings(ctx: click.Context):
    obj = ctx.ensure_object(dict)
    if "settings" not in obj:
        from actiongate.config.settings import load_settings
        from actiongate.core.structured_logger import configure_logging

        settings = load_settings(obj.get("config_path"))
        configure_logging(obj.get("log_level") or "WARNING", settings.logging.format)
        obj["settings"] = settings
    return obj["settings"]


def _engine(ctx: click.Context):
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        from actiongate.core.factories import create_approval_engine

        obj["engine"] = create_approval_engine(_settings(ctx))
    return obj["engine"]


def _handles_errors(func):
    """Turn engine errors into ``Error: ...`` on stderr and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ActionGateError as e:
            raise click.ClickException(e.message) from e

    return wrapper


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="YAML settings file")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              default=None, help="Log level for stderr output (default WARNING)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """actiongate — human-gated approvals for agent-proposed commands."""
    obj = ctx.ensure_object(dict)
    obj.setdefault("config_path", config_path)
    obj.setdefault("log_level", log_level)


@cli.command(name="list")
@click.option("-a", "--all", "include_all", is_flag=True, help="Include completed/expired approvals")
@click.option("-v", "--verbose", is_flag=True, help="Show full details")
@click.pass_context
@_handles_errors
def list_approvals(ctx: click.Context, include_all: bool, verbose: bool) -> None:
    """List pending approvals."""
    approvals = _engine(ctx).list(include_all=include_all)
    if not approvals:
        click.echo("No pending approvals" if not include_all else "No approvals")
        return

    click.echo(f"{len(approvals)} approval(s):\n")
    for approval in approvals:
        click.echo(format_approval(approval, verbose))
        click.echo()


@cli.command()
@click.argument("ids", nargs=-1, required=True)
@click.option("--as", "actor", default=None, help="Who is approving (e.g. 'user:alex')")
@click.pass_context
@_handles_errors
def yes(ctx: click.Context, ids: tuple[str, ...], actor: str | None) -> None:
    """Approve and execute action(s). Use 'all' to approve all pending."""
    engine = _engine(ctx)
    actor = actor or _default_actor()

    if len(ids) == 1 and ids[0].lower() != "all":
        executed = engine.approve_and_execute(ids[0], actor)
        mark = "✓" if executed.status == ApprovalStatus.EXECUTED else "✗"
        click.echo(f"{mark} {executed.id}: {executed.summary} ({executed.status.value})")
        if executed.result:
            click.echo(executed.result)
        if executed.error:
            click.echo(f"Errors:\n{executed.error}", err=True)
        return

    targets = "all" if len(ids) == 1 else list(ids)
    result = engine.batch(targets, actor)
    click.echo(f"Processed {len(result.approved)} approval(s)")
    for approval in result.approved:
        click.echo(f"  ✓ {approval.id}: {approval.summary} ({approval.status.value})")
    for error in result.errors:
        click.echo(f"  ✗ {error.id}: {error.error}", err=True)


@cli.command()
@click.argument("approval_id")
@click.option("--as", "actor", default=None, help="Who is denying")
@click.pass_context
@_handles_errors
def no(ctx: click.Context, approval_id: str, actor: str | None) -> None:
    """Deny an approval."""
    denied = _engine(ctx).deny(approval_id, actor or _default_actor())
    click.echo(f"Denied {denied.id}: {denied.summary}")


@cli.command()
@click.argument("approval_id")
@click.pass_context
@_handles_errors
def show(ctx: click.Context, approval_id: str) -> None:
    """Show details of an approval."""
    approval = _engine(ctx).load(approval_id)
    if approval is None:
        raise click.ClickException(f"Approval {approval_id.strip().upper()} not found")
    click.echo(format_approval(approval, verbose=True))


@cli.command()
@click.option("-d", "--days", type=click.FloatRange(min=0), default=None,
              help="Remove approvals older than N days (default from settings)")
@click.pass_context
@_handles_errors
def clean(ctx: click.Context, days: float | None) -> None:
    """Remove old completed/expired approvals."""
    if days is None:
        days = _settings(ctx).approvals.clean_older_than_days
    removed = _engine(ctx).clean(days)
    click.echo(f"Removed {removed} old approval(s)")


@cli.command()
@click.option("-n", "--limit", type=click.IntRange(min=1), default=20, show_default=True,
              help="Number of entries to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@_handles_errors
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show audit history of approvals."""
    entries = _engine(ctx).read_audit_log(limit)
    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return
    if not entries:
        click.echo("No audit history yet")
        return
    click.echo("Audit History (most recent first):\n")
    click.echo(format_history(entries))


@cli.command()
@click.pass_context
@_handles_errors
def stats(ctx: click.Context) -> None:
    """Show approval statistics."""
    result = _engine(ctx).stats()
    click.echo("Approval Statistics\n")
    click.echo(f"Total records: {result.total}")
    click.echo("\nBy status:")
    for status, count in sorted(result.by_status.items()):
        click.echo(f"  {status}: {count}")
    if result.recent_activity:
        click.echo("\nRecent activity:")
        for entry in result.recent_activity[:5]:
            time = entry.ts.astimezone().strftime("%b %d %H:%M")
            click.echo(f"  {time} - {entry.event.value}: {entry.summary}")


@cli.command()
@click.argument("summary")
@click.option("-c", "--command", "commands", multiple=True, help="Command to execute (repeatable)")
@click.option("--by", "proposed_by", default="cli", show_default=True, help="Who is proposing")
@click.option("--ttl", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Minutes until the approval expires")
@click.option("--details", default=None, help="Longer explanation shown to the approver")
@click.pass_context
@_handles_errors
def propose(
    ctx: click.Context,
    summary: str,
    commands: tuple[str, ...],
    proposed_by: str,
    ttl: float | None,
    details: str | None,
) -> None:
    """Create an approval request (mostly for testing)."""
    if not summary.strip():
        raise click.BadParameter("summary must not be empty", param_hint="SUMMARY")
    approval = _engine(ctx).propose(
        summary,
        list(commands) or [DEFAULT_PROPOSE_COMMAND],
        details=details,
        ttl=timedelta(minutes=ttl) if ttl else None,
        proposed_by=proposed_by,
    )
    click.echo(format_approval_message(approval))


@cli.command(name="cleanup-service")
@click.pass_context
@_handles_errors
def cleanup_service(ctx: click.Context) -> None:
    """Run the periodic cleanup of old approvals until interrupted."""
    from actiongate.observability.cleanup_service import CleanupService

    settings = _settings(ctx)
    service = CleanupService.from_config(
        _engine(ctx), settings.cleanup, settings.approvals.clean_older_than_days
    )

    async def _run() -> None:
        await service.start()
        try:
            await asyncio.Event().wait()
        finally:
            await service.stop()

    click.echo(f"Cleaning approvals older than {service.older_than_days:g} day(s) "
               f"every {service.interval_seconds}s. Ctrl-C to stop.")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("Stopped.")


@cli.command()
@click.pass_context
@_handles_errors
def serve(ctx: click.Context) -> None:
    """Run the HTTP gateway."""
    from actiongate.interfaces.web.server import create_gateway

    settings = _settings(ctx)
    gateway = create_gateway(_engine(ctx), settings)
    try:
        asyncio.run(gateway.start())
    except KeyboardInterrupt:
        click.echo("Stopped.")


if __name__ == "__main__":
    cli()
