"""
Record link service — links external records to ledger transactions.

Loads candidate transactions, walks the external records in
chronological order through a RecordMatcher, and persists one
RecordLink per match. Dry-run computes exactly the same report and
writes nothing.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from ledger_reconciler.domain.instant import to_storage, utc_now
from ledger_reconciler.domain.matching import RecordMatcher
from ledger_reconciler.errors import DataIntegrityError, IssueLog, ValidationError
from ledger_reconciler.models.record_link import RecordLink
from ledger_reconciler.models.transaction import Transaction
from ledger_reconciler.schemas.records import ExternalRecord, TransactionRecord
from ledger_reconciler.schemas.report import IssueData, LinkReport, LinkResult
from ledger_reconciler.services.store import LedgerStore, WriteOp

logger = logging.getLogger(__name__)


class RecordLinkService:

    def __init__(self, store: LedgerStore):
        self.store = store

    def load_candidates(
        self, client_id: str, category: str | None = None
    ) -> tuple[list[TransactionRecord], IssueLog]:
        filters = [Transaction.category == category] if category else []
        rows = self.store.query(
            Transaction,
            client_id,
            filters=filters,
            order_by=[Transaction.date.asc(), Transaction.id.asc()],
        )
        issues = IssueLog()
        candidates = []
        for row in rows:
            try:
                candidates.append(TransactionRecord.model_validate(row))
            except PydanticValidationError as e:
                issues.record(ValidationError(
                    f"Transaction {row.id} is malformed: {e.errors()[0]['msg']}",
                    record_id=row.id,
                    kind="malformed-transaction",
                ))
        return candidates, issues

    def existing_links(self, client_id: str) -> dict[str, str]:
        """record_id -> transaction_id for links made in earlier runs."""
        return {
            link.record_id: link.transaction_id
            for link in self.store.query(RecordLink, client_id)
        }

    def _parse_records(self, raw_records: list, issues: IssueLog) -> list[ExternalRecord]:
        records = []
        seen_ids: set[str] = set()
        for index, raw in enumerate(raw_records):
            if isinstance(raw, ExternalRecord):
                record = raw
            else:
                try:
                    record = ExternalRecord.model_validate(raw)
                except PydanticValidationError as e:
                    ref = raw.get("record_id") if isinstance(raw, dict) else None
                    issues.record(ValidationError(
                        f"Record {ref or index} is malformed: {e.errors()[0]['msg']}",
                        record_id=ref,
                        kind="malformed-record",
                    ))
                    continue
            if record.amount <= 0:
                issues.record(DataIntegrityError(
                    f"Record {record.record_id} has non-positive amount {record.amount}",
                    record_id=record.record_id,
                    kind="non-positive-amount",
                ))
                continue
            if record.record_id is not None:
                if record.record_id in seen_ids:
                    issues.record(DataIntegrityError(
                        f"Record {record.record_id} appears more than once in this run",
                        record_id=record.record_id,
                        kind="duplicate-record",
                    ))
                    continue
                seen_ids.add(record.record_id)
            records.append(record)
        return records

    def link_records(
        self,
        client_id: str,
        raw_records: list,
        category: str | None = None,
        dry_run: bool = False,
    ) -> LinkReport:
        """
        Match every record to at most one transaction and persist the links.

        Records already linked in a previous run are skipped and their
        transactions are withheld from the candidate pool.
        When a record_id repeats, the first occurrence is kept and the
        rest are reported as duplicates.
        """
        candidates, issues = self.load_candidates(client_id, category)
        records = self._parse_records(raw_records, issues)
        # Chronological, then by caller key for a stable order
        records.sort(key=lambda r: (r.date, r.record_id or ""))

        matcher = RecordMatcher(candidates)
        previous = self.existing_links(client_id)
        for transaction_id in previous.values():
            matcher.consume(transaction_id)

        report = LinkReport(client_id=client_id, dry_run=dry_run)
        for record in records:
            report.records_processed += 1
            if record.record_id is not None and record.record_id in previous:
                report.already_linked += 1
                continue

            result = matcher.match(record)
            if result is None:
                report.unmatched.append(record.record_id)
                continue

            report.links.append(LinkResult(
                record_id=record.record_id,
                unit_id=record.unit_id,
                transaction_id=result.transaction.id,
                tier=result.tier,
            ))

        report.issues = [IssueData(**issue.to_dict()) for issue in issues.issues]

        logger.info(
            "Linked %d of %d record(s) for %s (%d unmatched, %d already linked) %s",
            len(report.links), report.records_processed, client_id,
            len(report.unmatched), report.already_linked, report.tier_counts(),
        )
        for line in issues.summary_lines():
            logger.info(line)

        if dry_run:
            return report

        linked_at = to_storage(utc_now())
        ops = [
            WriteOp.put(RecordLink(
                client_id=client_id,
                record_id=link.record_id,
                unit_id=link.unit_id,
                transaction_id=link.transaction_id,
                tier=link.tier,
                linked_at=linked_at,
            ))
            for link in report.links
            if link.record_id is not None
        ]
        skipped_keyless = len(report.links) - len(ops)
        if skipped_keyless:
            logger.warning("%d match(es) have no record_id and were not persisted", skipped_keyless)
        self.store.batch_write(ops)
        report.committed = True
        return report
