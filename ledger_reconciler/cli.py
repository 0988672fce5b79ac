"""CLI entry point for reconciliation jobs.

Usage:
    ledger-reconciler rebuild-balances MTC 2025             # dry run
    ledger-reconciler rebuild-balances MTC 2025 --execute
    ledger-reconciler --env prod link-records MTC payments.json --live
    ledger-reconciler rebuild-credit MTC credit_history.json --apply
    ledger-reconciler purge-client DEMO --backup demo.json --execute

Every mutating command computes its full report in dry-run mode
first. Writes happen only with --execute (or --apply / --live), and
outside dev only after the operator types the client id back.
Exit code is 0 on success (dry runs included), 1 on a fatal error.
"""

import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click

from ledger_reconciler.config import get_settings
from ledger_reconciler.domain.money import format_minor_units
from ledger_reconciler.errors import ReconciliationError
from ledger_reconciler.logging_config import configure_logging
from ledger_reconciler.models.base import create_session_factory, create_store_engine
from ledger_reconciler.services.balance_service import BalanceService
from ledger_reconciler.services.credit_service import CreditLedgerService
from ledger_reconciler.services.link_service import RecordLinkService
from ledger_reconciler.services.purge_service import ClientDataService
from ledger_reconciler.services.snapshot_service import SnapshotService
from ledger_reconciler.services.store import LedgerStore

log = logging.getLogger(__name__)

ENVIRONMENTS = ("dev", "staging", "prod")


@dataclass
class CliContext:
    database_url: str
    environment: str
    as_json: bool


@contextmanager
def open_store(ctx: CliContext):
    """One engine and session per command; closed on the way out."""
    engine = create_store_engine(ctx.database_url)
    session = create_session_factory(engine)()
    try:
        yield LedgerStore(session)
    finally:
        session.close()
        engine.dispose()


def confirm_target(ctx: CliContext, client_id: str) -> None:
    """
    Guard writes outside dev.

    The operator must type the client id; there is no flag that
    skips this.
    """
    if ctx.environment == "dev":
        return
    click.echo(
        f"About to WRITE to {ctx.environment.upper()} for client {client_id}.",
        err=True,
    )
    typed = click.prompt("Type the client id to continue", default="", show_default=False)
    if typed.strip() != client_id:
        raise ReconciliationError("Confirmation did not match; nothing was written")


def _resolve_dry_run(dry_run: bool, execute: bool, apply: bool, live: bool) -> bool:
    wants_write = execute or apply or live
    if dry_run and wants_write:
        raise click.UsageError("--dry-run cannot be combined with --execute/--apply/--live")
    return not wants_write


def mode_options(func):
    """--dry-run (default) or --execute and its aliases."""
    for option in reversed([
        click.option("--dry-run", "dry_run", is_flag=True, help="Compute and report only (default)."),
        click.option("--execute", is_flag=True, help="Commit writes."),
        click.option("--apply", is_flag=True, help="Alias for --execute."),
        click.option("--live", is_flag=True, help="Alias for --execute."),
    ]):
        func = option(func)
    return func


def run_job(ctx: CliContext, client_id: str, dry_run: bool, job, show) -> None:
    """
    Preview, then (if asked) confirm and commit.

    job(store, dry_run) returns a report; show(report) prints it.
    Fatal errors exit with status 1.
    """
    try:
        with open_store(ctx) as store:
            preview = job(store, True)
            _emit(ctx, preview, show)
            if dry_run:
                _status(ctx, "Dry run: no changes written.")
                return
            confirm_target(ctx, client_id)
            job(store, False)
            _status(ctx, "Changes committed.")
    except ReconciliationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _emit(ctx: CliContext, report, show) -> None:
    if ctx.as_json:
        click.echo(report.model_dump_json(indent=2))
    else:
        show(report)


def _status(ctx: CliContext, message: str) -> None:
    # keep stdout parseable when it carries a JSON report
    click.echo(message, err=ctx.as_json)


def _show_issues(issues) -> None:
    if not issues:
        click.echo("No data issues.")
        return
    click.echo(f"{len(issues)} record(s) skipped:")
    for issue in issues:
        click.echo(f"  [{issue.kind}] {issue.record_id or '-'}: {issue.message}")


def _load_json(path: Path):
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ReconciliationError(f"{path} is not valid JSON: {e}")


@click.group()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Ledger store URL.")
@click.option("--env", "environment", type=click.Choice(ENVIRONMENTS), default=None,
              help="Target environment (default: ENVIRONMENT setting).")
@click.option("--log-level", default=None, help="Logging level.")
@click.option("--json", "as_json", is_flag=True, help="Print reports as JSON.")
@click.pass_context
def main(ctx, database_url, environment, log_level, as_json):
    """Reconcile balances, links and credit ledgers against the transaction log."""
    settings = get_settings()
    configure_logging(log_level or settings.LOG_LEVEL)
    environment = environment or settings.ENVIRONMENT
    if environment not in ENVIRONMENTS:
        raise click.BadParameter(f"unknown environment {environment!r}", param_hint="--env")
    ctx.obj = CliContext(
        database_url=database_url or settings.DATABASE_URL,
        environment=environment,
        as_json=as_json,
    )


@main.command("rebuild-balances")
@click.argument("client_id")
@click.argument("fiscal_year", type=int)
@mode_options
@click.pass_obj
def rebuild_balances(ctx, client_id, fiscal_year, dry_run, execute, apply, live):
    """Rebuild account balances from the FISCAL_YEAR snapshot."""
    dry_run = _resolve_dry_run(dry_run, execute, apply, live)

    def show(report):
        click.echo(
            f"Client {report.client_id}: replayed {report.processed_count} transaction(s) "
            f"after {report.boundary:%Y-%m-%d}"
        )
        for account in report.accounts:
            click.echo(f"  {account.id:<24} {account.name:<24} {format_minor_units(account.balance):>16}")
        _show_issues(report.issues)

    run_job(
        ctx, client_id, dry_run,
        lambda store, dry: BalanceService(store).rebuild(client_id, fiscal_year, dry_run=dry),
        show,
    )


@main.command("create-snapshot")
@click.argument("client_id")
@click.argument("fiscal_year", type=int)
@click.option("--overwrite", is_flag=True, help="Replace an existing snapshot.")
@mode_options
@click.pass_obj
def create_snapshot(ctx, client_id, fiscal_year, overwrite, dry_run, execute, apply, live):
    """Snapshot current balances as the FISCAL_YEAR close."""
    dry_run = _resolve_dry_run(dry_run, execute, apply, live)

    def show(snapshot):
        click.echo(f"Snapshot FY{snapshot.fiscal_year} for {client_id}:")
        for account in snapshot.accounts:
            click.echo(f"  {account.id:<24} {account.name:<24} {format_minor_units(account.balance):>16}")

    run_job(
        ctx, client_id, dry_run,
        lambda store, dry: SnapshotService(store).capture_current_balances(
            client_id, fiscal_year, overwrite=overwrite, dry_run=dry
        ),
        show,
    )


@main.command("list-snapshots")
@click.argument("client_id")
@click.pass_obj
def list_snapshots(ctx, client_id):
    """List stored year-end snapshots."""
    try:
        with open_store(ctx) as store:
            for summary in SnapshotService(store).list_snapshots(client_id):
                click.echo(f"{summary.fiscal_year}  {summary.created_at:%Y-%m-%d %H:%M}")
    except ReconciliationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command("link-records")
@click.argument("client_id")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--category", default=None, help="Only match transactions in this category.")
@mode_options
@click.pass_obj
def link_records(ctx, client_id, records_file, category, dry_run, execute, apply, live):
    """Link external records (JSON list) to ledger transactions."""
    dry_run = _resolve_dry_run(dry_run, execute, apply, live)

    def job(store, dry):
        payload = _load_json(records_file)
        records = payload.get("records", []) if isinstance(payload, dict) else payload
        return RecordLinkService(store).link_records(
            client_id, records, category=category, dry_run=dry
        )

    def show(report):
        click.echo(
            f"Client {report.client_id}: {len(report.links)} linked, "
            f"{len(report.unmatched)} unmatched, {report.already_linked} already linked"
        )
        for tier, count in sorted(report.tier_counts().items()):
            click.echo(f"  {tier:<18} {count}")
        for link in report.links:
            click.echo(f"  {link.record_id or '-'} -> {link.transaction_id} ({link.tier.value})")
        _show_issues(report.issues)

    run_job(ctx, client_id, dry_run, job, show)


@main.command("rebuild-credit")
@click.argument("client_id")
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--opening-date", default=None, help="Timestamp for opening-balance entries.")
@mode_options
@click.pass_obj
def rebuild_credit(ctx, client_id, history_file, opening_date, dry_run, execute, apply, live):
    """Regenerate unit credit ledgers from a legacy history export."""
    dry_run = _resolve_dry_run(dry_run, execute, apply, live)

    def job(store, dry):
        source = _load_json(history_file)
        if not isinstance(source, dict):
            raise ReconciliationError(f"{history_file} must map unit ids to histories")
        return CreditLedgerService(store).rebuild_histories(
            client_id, source, opening_timestamp=opening_date, dry_run=dry
        )

    def show(report):
        for unit in report.units:
            click.echo(
                f"  {unit.unit_id:<10} {len(unit.entries):>3} entr(ies)  "
                f"balance {format_minor_units(unit.final_balance):>12}"
            )
        _show_issues(report.issues)

    run_job(ctx, client_id, dry_run, job, show)


@main.command("purge-client")
@click.argument("client_id")
@click.option("--backup", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write a JSON backup of the client before deleting.")
@mode_options
@click.pass_obj
def purge_client(ctx, client_id, backup, dry_run, execute, apply, live):
    """Delete a client and all of its data."""
    dry_run = _resolve_dry_run(dry_run, execute, apply, live)

    def job(store, dry):
        service = ClientDataService(store)
        if not dry and backup is not None:
            backup.write_text(json.dumps(service.export_client(client_id), indent=2))
            log.info("Backup written to %s", backup)
        return service.purge_client(client_id, dry_run=dry)

    def show(report):
        for collection, count in report.deleted.items():
            click.echo(f"  {collection:<18} {count}")

    run_job(ctx, client_id, dry_run, job, show)


if __name__ == "__main__":
    main()
