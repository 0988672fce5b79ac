"""
Credit ledger normalization.

Legacy credit history recorded the balance a unit was *adjusted to*
after each event. A replayable ledger needs the *change* instead.
normalize() turns absolute observations into delta entries whose sum
equals the last observed balance exactly.
"""

import re
from datetime import datetime

from ledger_reconciler.errors import InvalidArgument
from ledger_reconciler.models.enums import CreditSource
from ledger_reconciler.schemas.credit import BalanceObservation, CreditLedgerEntryData

OPENING_NOTE = "Starting balance from prior period"

# Evaluated top to bottom; first hit wins.
NOTE_RULES: list[tuple[re.Pattern, CreditSource]] = [
    (re.compile(r"\bdeposit(?:ed)?\b"), CreditSource.TRANSACTION),
    (re.compile(r"\bcredit used\b"), CreditSource.TRANSACTION),
    (re.compile(r"\buse of credit\b"), CreditSource.TRANSACTION),
    (re.compile(r"\bused to (?:cover|pay)\b"), CreditSource.TRANSACTION),
    (re.compile(r"\bunderpayment\b"), CreditSource.TRANSACTION),
    (re.compile(r"\bpayment (?:received|applied)\b"), CreditSource.TRANSACTION),
    (re.compile(r"\brefund"), CreditSource.ADMIN),
    (re.compile(r"\bconversion of\b"), CreditSource.ADMIN),
    (re.compile(r"\bmanual(?:ly)?\b"), CreditSource.ADMIN),
    (re.compile(r"\badjust(?:ment|ed)\b"), CreditSource.ADMIN),
    (re.compile(r"\bcorrection\b"), CreditSource.ADMIN),
    (re.compile(r"\boverpayment on\b"), CreditSource.ADMIN),
    (re.compile(r"\bremoval of duplicate\b"), CreditSource.ADMIN),
    (re.compile(r"\bwell drilling\b"), CreditSource.ADMIN),
]


def classify_note(note: str | None) -> CreditSource:
    """Source of a credit change, read from its free-text note."""
    text = (note or "").lower()
    for pattern, source in NOTE_RULES:
        if pattern.search(text):
            return source
    return CreditSource.IMPORT


def normalize(
    starting_balance: int,
    observations: list[BalanceObservation],
    unit_id: str = "unit",
    opening_timestamp: datetime | None = None,
) -> list[CreditLedgerEntryData]:
    """
    Convert absolute balance observations into delta entries.

    A non-zero starting balance becomes a synthetic opening entry.
    Zero-change observations emit nothing but still move the
    running balance. Entry ids depend only on the unit and the
    observation index, so identical input gives identical output.
    """
    if isinstance(starting_balance, bool) or not isinstance(starting_balance, int):
        raise InvalidArgument("starting_balance must be integer minor units")

    entries: list[CreditLedgerEntryData] = []

    if starting_balance != 0:
        if opening_timestamp is None:
            if not observations:
                raise InvalidArgument(
                    "opening_timestamp is required when there are no observations"
                )
            opening_timestamp = observations[0].timestamp
        entries.append(CreditLedgerEntryData(
            id=f"import_starting_{unit_id}",
            timestamp=opening_timestamp,
            amount=starting_balance,
            note=OPENING_NOTE,
            source=CreditSource.IMPORT,
        ))

    previous = starting_balance
    for index, observation in enumerate(observations):
        delta = observation.absolute_balance - previous
        previous = observation.absolute_balance
        if delta == 0:
            continue
        entries.append(CreditLedgerEntryData(
            id=f"import_{unit_id}_{index}",
            timestamp=observation.timestamp,
            amount=delta,
            note=observation.note,
            source=classify_note(observation.note),
        ))

    return entries


def ledger_balance(entries: list[CreditLedgerEntryData]) -> int:
    return sum(entry.amount for entry in entries)


def expected_balance(starting_balance: int, observations: list[BalanceObservation]) -> int:
    """Balance the normalized ledger must sum to."""
    if observations:
        return observations[-1].absolute_balance
    return starting_balance
