"""
Credit ledger service — regenerates per-unit credit history.

Source history (absolute "adjusted to" balances, major units) is
normalized into delta entries and written back wholesale: entries
that no longer exist are deleted, the rest overwritten. Running it
twice on the same source leaves the store unchanged.
"""

import logging
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from ledger_reconciler.domain.credit_normalizer import (
    expected_balance,
    ledger_balance,
    normalize,
)
from ledger_reconciler.domain.instant import to_instant, to_storage
from ledger_reconciler.domain.money import to_minor_units
from ledger_reconciler.errors import (
    DataIntegrityError,
    InvalidArgument,
    IssueLog,
    ValidationError,
)
from ledger_reconciler.models.credit_ledger_entry import CreditLedgerEntry
from ledger_reconciler.schemas.credit import BalanceObservation, CreditLedgerEntryData
from ledger_reconciler.schemas.report import CreditRebuildReport, IssueData, UnitCreditReport
from ledger_reconciler.services.store import LedgerStore, WriteOp

logger = logging.getLogger(__name__)

# Field names seen in legacy credit history exports, preferred first.
_BALANCE_KEYS = ("absolute_balance", "adjustedBalance", "adjustedBalanceMxn")
_DATE_KEYS = ("timestamp", "date", "dateText")
_NOTE_KEYS = ("note", "fromText")


def _first(entry: dict, keys: tuple[str, ...]):
    for key in keys:
        if key in entry:
            return entry[key]
    return None


def observations_from_source(unit_id: str, entries: list[dict]) -> list[BalanceObservation]:
    """
    Parse legacy history entries into observations.

    Balances are major units and converted to minor units here.
    Raises ValidationError naming the first malformed entry.
    """
    observations = []
    for index, entry in enumerate(entries):
        ref = f"{unit_id}[{index}]"
        balance = _first(entry, _BALANCE_KEYS)
        try:
            observations.append(BalanceObservation(
                absolute_balance=to_minor_units(balance),
                timestamp=to_instant(_first(entry, _DATE_KEYS)),
                note=_first(entry, _NOTE_KEYS) or "",
            ))
        except ValidationError as e:
            raise ValidationError(f"History entry {ref}: {e}", record_id=ref, kind="malformed-history")
        except PydanticValidationError as e:
            raise ValidationError(
                f"History entry {ref}: {e.errors()[0]['msg']}", record_id=ref, kind="malformed-history"
            )
    return observations


class CreditLedgerService:

    def __init__(self, store: LedgerStore):
        self.store = store

    def stored_entries(self, client_id: str, unit_id: str) -> list[CreditLedgerEntry]:
        return self.store.query(
            CreditLedgerEntry,
            client_id,
            filters=[CreditLedgerEntry.unit_id == unit_id],
            order_by=[CreditLedgerEntry.timestamp.asc(), CreditLedgerEntry.id.asc()],
        )

    def credit_balance(self, client_id: str, unit_id: str) -> int:
        """Current credit balance: the sum of the unit's entries."""
        return sum(entry.amount for entry in self.stored_entries(client_id, unit_id))

    def build_unit_history(
        self,
        unit_id: str,
        starting_balance: int,
        observations: list[BalanceObservation],
        opening_timestamp: datetime | None = None,
    ) -> list[CreditLedgerEntryData]:
        """Normalize and check the sum invariant."""
        try:
            entries = normalize(
                starting_balance, observations, unit_id=unit_id, opening_timestamp=opening_timestamp
            )
        except InvalidArgument as e:
            raise DataIntegrityError(f"Unit {unit_id}: {e}", record_id=unit_id, kind="unnormalizable")

        expected = expected_balance(starting_balance, observations)
        actual = ledger_balance(entries)
        if actual != expected:
            raise DataIntegrityError(
                f"Unit {unit_id} ledger sums to {actual}, expected {expected}",
                record_id=unit_id,
                kind="sum-mismatch",
            )
        return entries

    def _replace_ops(
        self, client_id: str, unit_id: str, entries: list[CreditLedgerEntryData]
    ) -> list[WriteOp]:
        new_ids = {entry.id for entry in entries}
        ops = [
            WriteOp.delete(row)
            for row in self.stored_entries(client_id, unit_id)
            if row.id not in new_ids
        ]
        ops.extend(
            WriteOp.put(CreditLedgerEntry(
                client_id=client_id,
                unit_id=unit_id,
                id=entry.id,
                timestamp=to_storage(entry.timestamp),
                amount=entry.amount,
                note=entry.note,
                source=entry.source,
                transaction_ref=entry.transaction_ref,
            ))
            for entry in entries
        )
        return ops

    def rebuild_unit_history(
        self,
        client_id: str,
        unit_id: str,
        starting_balance: int,
        observations: list[BalanceObservation],
        opening_timestamp: datetime | None = None,
        dry_run: bool = False,
    ) -> UnitCreditReport:
        entries = self.build_unit_history(
            unit_id, starting_balance, observations, opening_timestamp
        )
        if not dry_run:
            self.store.batch_write(self._replace_ops(client_id, unit_id, entries))
        return UnitCreditReport(
            unit_id=unit_id,
            entries=entries,
            final_balance=ledger_balance(entries),
        )

    def rebuild_histories(
        self,
        client_id: str,
        source: dict[str, dict],
        opening_timestamp=None,
        dry_run: bool = False,
    ) -> CreditRebuildReport:
        """
        Regenerate every unit in a legacy source export.

        source maps unit id -> {"startingBalance": <major units>,
        "entries": [...], "openingDate": optional}. A unit with any
        malformed entry is skipped as a whole and reported.
        """
        issues = IssueLog()
        report = CreditRebuildReport(client_id=client_id, dry_run=dry_run)
        default_opening = to_instant(opening_timestamp) if opening_timestamp is not None else None

        for unit_id in sorted(source):
            data = source[unit_id] or {}
            try:
                starting = to_minor_units(data.get("startingBalance", 0))
                observations = observations_from_source(unit_id, data.get("entries", []))
                opening = data.get("openingDate")
                opening = to_instant(opening) if opening is not None else default_opening
                unit_report = self.rebuild_unit_history(
                    client_id, unit_id, starting, observations, opening, dry_run=True
                )
            except (ValidationError, DataIntegrityError) as e:
                if e.record_id is None:
                    e.record_id = unit_id
                issues.record(e)
                continue
            report.units.append(unit_report)

        report.issues = [IssueData(**issue.to_dict()) for issue in issues.issues]

        logger.info(
            "Normalized credit history for %d unit(s) of %s, %d skipped",
            len(report.units), client_id, issues.count,
        )
        for line in issues.summary_lines():
            logger.info(line)

        if dry_run:
            return report

        ops = []
        for unit_report in report.units:
            ops.extend(self._replace_ops(client_id, unit_report.unit_id, unit_report.entries))
        self.store.batch_write(ops)
        report.committed = True
        return report
