"""
Balance and snapshot endpoints.

Thin HTTP layer: translates the error taxonomy into status codes
and delegates everything else to the services. Rebuilds default to
dry-run; a write has to be asked for, and outside dev it must
carry confirm=<client_id>.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger_reconciler.config import get_settings
from ledger_reconciler.errors import (
    AlreadyExists,
    ConfigurationError,
    TransientStoreError,
)
from ledger_reconciler.models.base import get_db
from ledger_reconciler.schemas.account import (
    AdjustmentRequest,
    BalanceAdjustment,
    ReconciliationAccount,
)
from ledger_reconciler.schemas.report import RebuildReport
from ledger_reconciler.schemas.snapshot import SnapshotData, SnapshotSummary
from ledger_reconciler.services.balance_service import BalanceService
from ledger_reconciler.services.snapshot_service import SnapshotService
from ledger_reconciler.services.store import LedgerStore

router = APIRouter(prefix="/clients/{client_id}", tags=["Balances"])


def _unavailable(e: TransientStoreError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(e))


def _require_confirmation(client_id: str, confirm: str | None) -> None:
    """
    Outside dev a write must name its client in `confirm`.

    Mirrors the CLI prompt: there is no flag that skips it.
    """
    environment = get_settings().ENVIRONMENT
    if environment != "dev" and confirm != client_id:
        raise HTTPException(
            status_code=403,
            detail=f"Writes to {environment} require confirm={client_id}",
        )


@router.get("/snapshots", response_model=list[SnapshotSummary])
def list_snapshots(client_id: str, db: Session = Depends(get_db)):
    service = SnapshotService(LedgerStore(db))
    try:
        return service.list_snapshots(client_id)
    except TransientStoreError as e:
        raise _unavailable(e)


@router.post("/snapshots/{year}", response_model=SnapshotData, status_code=201)
def create_snapshot(
    client_id: str,
    year: int,
    overwrite: bool = False,
    confirm: str | None = None,
    db: Session = Depends(get_db),
):
    """Snapshot the client's current balances as the year-end close."""
    _require_confirmation(client_id, confirm)
    service = SnapshotService(LedgerStore(db))
    try:
        return service.capture_current_balances(client_id, year, overwrite=overwrite)
    except ConfigurationError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyExists as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except TransientStoreError as e:
        raise _unavailable(e)


@router.post("/balances/rebuild", response_model=RebuildReport)
def rebuild_balances(
    client_id: str,
    start_year: int,
    dry_run: bool = True,
    confirm: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Recompute account balances from the start_year snapshot.

    Skipped transactions are listed in the report's issues; they
    don't fail the request.
    """
    if not dry_run:
        _require_confirmation(client_id, confirm)
    service = BalanceService(LedgerStore(db))
    try:
        return service.rebuild(client_id, start_year, dry_run=dry_run)
    except ConfigurationError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except TransientStoreError as e:
        raise _unavailable(e)


@router.get(
    "/accounts/reconciliation",
    response_model=list[ReconciliationAccount],
)
def reconciliation_accounts(client_id: str, db: Session = Depends(get_db)):
    service = BalanceService(LedgerStore(db))
    try:
        return service.accounts_for_reconciliation(client_id)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/accounts/adjustments",
    response_model=list[BalanceAdjustment],
)
def plan_adjustments(
    client_id: str,
    request: AdjustmentRequest,
    db: Session = Depends(get_db),
):
    """Differences between recorded balances and statement balances."""
    service = BalanceService(LedgerStore(db))
    try:
        return service.plan_adjustments(client_id, request.actual_balances)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))
