"""
Error taxonomy for reconciliation runs.

Fatal errors (ConfigurationError, TransientStoreError after retries)
abort a run immediately. Non-fatal errors (DataIntegrityError,
ValidationError) are collected in an IssueLog, the offending record
is skipped, and the run completes with caveats.
"""

from dataclasses import dataclass, field


class ReconciliationError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgument(ReconciliationError, ValueError):
    """A pure function received an argument outside its domain."""


class ConfigurationError(ReconciliationError):
    """
    A resource the run depends on is missing.

    Carries the client, year and missing resource so the operator
    can see exactly what to fix.
    """

    def __init__(
        self,
        message: str,
        client_id: str | None = None,
        year: int | None = None,
        resource: str | None = None,
    ):
        self.client_id = client_id
        self.year = year
        self.resource = resource
        context = ", ".join(
            f"{name}={value}"
            for name, value in (
                ("client", client_id),
                ("year", year),
                ("resource", resource),
            )
            if value is not None
        )
        super().__init__(f"{message} ({context})" if context else message)


class AlreadyExists(ReconciliationError):
    """A write-once record (e.g. a fiscal-year snapshot) already exists."""


class TransientStoreError(ReconciliationError):
    """The store kept failing after all retry attempts were used."""


class DataIntegrityError(ReconciliationError):
    """A record cannot be applied consistently (unresolved account, bad match)."""

    def __init__(self, message: str, record_id: str | None = None, kind: str = "integrity"):
        self.record_id = record_id
        self.kind = kind
        super().__init__(message)


class ValidationError(ReconciliationError):
    """An input record carries a malformed date or amount."""

    def __init__(self, message: str, record_id: str | None = None, kind: str = "validation"):
        self.record_id = record_id
        self.kind = kind
        super().__init__(message)


@dataclass
class Issue:
    """One skipped record in a run summary."""
    kind: str
    record_id: str | None
    message: str
    category: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "record_id": self.record_id,
            "message": self.message,
            "category": self.category,
        }


@dataclass
class IssueLog:
    """Accumulates non-fatal errors for the end-of-run summary."""
    issues: list[Issue] = field(default_factory=list)

    def record(self, error: DataIntegrityError | ValidationError) -> None:
        category = "validation" if isinstance(error, ValidationError) else "integrity"
        self.issues.append(
            Issue(
                kind=error.kind,
                record_id=error.record_id,
                message=str(error),
                category=category,
            )
        )

    @property
    def count(self) -> int:
        return len(self.issues)

    def summary_lines(self) -> list[str]:
        if not self.issues:
            return ["No data issues."]
        lines = [f"{self.count} record(s) skipped:"]
        for issue in self.issues:
            ref = issue.record_id or "-"
            lines.append(f"  [{issue.kind}] {ref}: {issue.message}")
        return lines
