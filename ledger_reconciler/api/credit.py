"""
Credit ledger endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger_reconciler.domain.credit_normalizer import ledger_balance, normalize
from ledger_reconciler.errors import InvalidArgument, TransientStoreError
from ledger_reconciler.models.base import get_db
from ledger_reconciler.schemas.credit import NormalizeRequest, NormalizeResponse
from ledger_reconciler.services.credit_service import CreditLedgerService
from ledger_reconciler.services.store import LedgerStore

router = APIRouter(tags=["Credit"])


@router.post("/credit/normalize", response_model=NormalizeResponse)
def normalize_history(request: NormalizeRequest):
    """
    Preview the delta ledger for a list of absolute balances.

    Pure computation; nothing is stored.
    """
    try:
        entries = normalize(
            request.starting_balance,
            request.observations,
            unit_id=request.unit_id,
            opening_timestamp=request.opening_timestamp,
        )
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))

    return NormalizeResponse(
        unit_id=request.unit_id,
        entries=entries,
        final_balance=ledger_balance(entries),
    )


@router.get("/clients/{client_id}/units/{unit_id}/credit")
def get_credit_balance(client_id: str, unit_id: str, db: Session = Depends(get_db)):
    """Current credit balance of a unit, in minor units."""
    service = CreditLedgerService(LedgerStore(db))
    try:
        balance = service.credit_balance(client_id, unit_id)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"client_id": client_id, "unit_id": unit_id, "balance": balance}
