"""
Record matching.

Links an external or legacy record (a historical dues payment, a
mislabeled collection) to exactly one ledger transaction. Strategies
are tried strongest first and the first tier with any candidate wins:

1. Sequence number found in both free texts
2. Unit + date within one day + exact amount
3. Unit + exact amount
4. Date within one day + exact amount
5. Exact amount alone

Within a tier the earliest-dated candidate wins, then the lowest id.
A transaction matched once is consumed and never offered again in
the same run.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable

from ledger_reconciler.models.enums import MatchTier
from ledger_reconciler.schemas.records import ExternalRecord, TransactionRecord

DATE_TOLERANCE = timedelta(days=1)

_SEQUENCE_MARKER = re.compile(r"\bseq(?:uence)?\s*(?:no\.?|number)?\s*[:#.]?\s*(\d+)", re.IGNORECASE)
_LEADING_HASH = re.compile(r"^\s*#(\d+)")
_UNIT_CODE = re.compile(r"^\s*([A-Za-z0-9-]+)")


def extract_sequence(text: str | None) -> str | None:
    """Sequence token in free text: "Seq: 25009", "sequence 12", "#25009 ..."."""
    if not text:
        return None
    found = _SEQUENCE_MARKER.search(text) or _LEADING_HASH.match(text)
    return found.group(1) if found else None


def normalized_unit(label: str | None) -> str | None:
    """
    Leading unit code of a unit label.

    "1C (Eifler)" -> "1C", "102 (Moguel)" -> "102".
    """
    if not label:
        return None
    found = _UNIT_CODE.match(label)
    return found.group(1).upper() if found else None


def transaction_sequence(txn: TransactionRecord) -> str | None:
    if txn.sequence_number:
        return str(txn.sequence_number).strip()
    return extract_sequence(txn.notes)


def tie_break_key(txn: TransactionRecord):
    return (txn.date, txn.id)


@dataclass(frozen=True)
class MatchResult:
    transaction: TransactionRecord
    tier: MatchTier


def _tiers(record: ExternalRecord) -> list[tuple[MatchTier, Callable[[TransactionRecord], bool]]]:
    token = extract_sequence(record.raw_notes)
    unit = normalized_unit(record.unit_id)

    def same_amount(txn):
        return txn.amount == record.amount

    def same_unit(txn):
        return unit is not None and normalized_unit(txn.unit_ref) == unit

    def near_date(txn):
        return abs(txn.date - record.date) <= DATE_TOLERANCE

    tiers = []
    if token is not None:
        tiers.append((MatchTier.SEQUENCE, lambda txn: transaction_sequence(txn) == token))
    tiers.extend([
        (MatchTier.UNIT_DATE_AMOUNT, lambda txn: same_unit(txn) and near_date(txn) and same_amount(txn)),
        (MatchTier.UNIT_AMOUNT, lambda txn: same_unit(txn) and same_amount(txn)),
        (MatchTier.DATE_AMOUNT, lambda txn: near_date(txn) and same_amount(txn)),
        (MatchTier.AMOUNT, same_amount),
    ])
    return tiers


def find_match(
    transactions: Iterable[TransactionRecord],
    record: ExternalRecord,
) -> MatchResult | None:
    """Best candidate for one record, without consuming anything."""
    candidates = sorted(transactions, key=tie_break_key)
    for tier, accepts in _tiers(record):
        for txn in candidates:
            if accepts(txn):
                return MatchResult(transaction=txn, tier=tier)
    return None


class RecordMatcher:
    """
    Greedy matcher over a shared candidate pool.

    Feed records one at a time in the order they should claim
    transactions (normally chronological). Each successful match
    consumes its transaction.
    """

    def __init__(self, transactions: Iterable[TransactionRecord]):
        self._pool = sorted(transactions, key=tie_break_key)
        self._consumed: set[str] = set()

    def available(self) -> list[TransactionRecord]:
        return [txn for txn in self._pool if txn.id not in self._consumed]

    def consume(self, transaction_id: str) -> None:
        """Exclude a transaction, e.g. one linked in an earlier run."""
        self._consumed.add(transaction_id)

    def is_consumed(self, transaction_id: str) -> bool:
        return transaction_id in self._consumed

    def match(self, record: ExternalRecord) -> MatchResult | None:
        result = find_match(self.available(), record)
        if result is not None:
            self._consumed.add(result.transaction.id)
        return result
