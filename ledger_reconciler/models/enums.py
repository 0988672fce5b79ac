"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountKind(str, enum.Enum):
    """Where the money physically sits."""
    BANK = "bank"
    CASH = "cash"


class CreditSource(str, enum.Enum):
    """Origin of a credit ledger entry."""
    TRANSACTION = "transaction"
    ADMIN = "admin"
    IMPORT = "import"


class MatchTier(str, enum.Enum):
    """Matching strategies, strongest first."""
    SEQUENCE = "sequence"
    UNIT_DATE_AMOUNT = "unit_date_amount"
    UNIT_AMOUNT = "unit_amount"
    DATE_AMOUNT = "date_amount"
    AMOUNT = "amount"
