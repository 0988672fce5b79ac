"""
Tests for regenerating unit credit ledgers.
"""

import pytest

from ledger_reconciler.errors import DataIntegrityError, ValidationError
from ledger_reconciler.models import CreditLedgerEntry, CreditSource
from ledger_reconciler.services.credit_service import (
    CreditLedgerService,
    observations_from_source,
)

SOURCE = {
    "1C": {
        "startingBalance": 6675,
        "entries": [
            {"adjustedBalanceMxn": 6180.50, "dateText": "Mon Aug 04 2025",
             "fromText": "Credit used for HOA dues"},
            {"adjustedBalanceMxn": 4598.06, "dateText": "2025-08-05",
             "fromText": "Credit used for water bill"},
            {"adjustedBalanceMxn": 4871.12, "dateText": "2025-08-06",
             "fromText": "Overpayment deposited"},
            {"adjustedBalanceMxn": 5371.12, "dateText": "2025-08-07",
             "fromText": "Manual adjustment by admin"},
        ],
    },
    "2A": {
        "startingBalance": 0,
        "entries": [
            {"adjustedBalance": "250.00", "date": "2025-08-01", "note": "Imported"},
        ],
    },
}


@pytest.fixture
def units(make_client):
    make_client("MTC")


def amounts(report, unit_id):
    unit = next(u for u in report.units if u.unit_id == unit_id)
    return [e.amount for e in unit.entries]


class TestObservationsFromSource:

    def test_legacy_field_names(self):
        observations = observations_from_source("1C", SOURCE["1C"]["entries"])
        assert [o.absolute_balance for o in observations] == [618050, 459806, 487112, 537112]
        assert observations[0].note == "Credit used for HOA dues"

    def test_malformed_entry_named(self):
        with pytest.raises(ValidationError) as exc:
            observations_from_source("2B", [{"adjustedBalance": "abc", "date": "2025-08-01"}])
        assert exc.value.record_id == "2B[0]"
        assert exc.value.kind == "malformed-history"


class TestRebuildHistories:

    def test_dry_run_report(self, store, units):
        report = CreditLedgerService(store).rebuild_histories("MTC", SOURCE, dry_run=True)

        assert amounts(report, "1C") == [667500, -49450, -158244, 27306, 50000]
        assert amounts(report, "2A") == [25000]
        assert store.writes_committed == 0

    def test_live_run_stores_entries(self, store, units):
        service = CreditLedgerService(store)
        report = service.rebuild_histories("MTC", SOURCE)

        assert report.committed is True
        stored = service.stored_entries("MTC", "1C")
        assert len(stored) == 5
        assert service.credit_balance("MTC", "1C") == 537112
        assert service.credit_balance("MTC", "2A") == 25000
        assert {e.source for e in stored} == {
            CreditSource.IMPORT, CreditSource.TRANSACTION, CreditSource.ADMIN,
        }

    def test_rerun_is_idempotent(self, store, units):
        service = CreditLedgerService(store)
        service.rebuild_histories("MTC", SOURCE)
        first = [(e.id, e.amount) for e in service.stored_entries("MTC", "1C")]
        service.rebuild_histories("MTC", SOURCE)
        second = [(e.id, e.amount) for e in service.stored_entries("MTC", "1C")]
        assert first == second

    def test_replace_drops_stale_entries(self, store, db_session, units):
        service = CreditLedgerService(store)
        service.rebuild_histories("MTC", SOURCE)

        shorter = {"1C": {"startingBalance": 6675, "entries": SOURCE["1C"]["entries"][:1]}}
        service.rebuild_histories("MTC", shorter)

        ids = [e.id for e in service.stored_entries("MTC", "1C")]
        assert sorted(ids) == ["import_1C_0", "import_starting_1C"]
        assert service.credit_balance("MTC", "1C") == 618050
        assert db_session.query(CreditLedgerEntry).filter_by(unit_id="2A").count() == 1

    def test_malformed_unit_skipped_others_processed(self, store, units):
        source = dict(SOURCE)
        source["2B"] = {"startingBalance": 10, "entries": [{"adjustedBalance": "abc", "date": "2025-08-01"}]}
        report = CreditLedgerService(store).rebuild_histories("MTC", source, dry_run=True)

        assert [u.unit_id for u in report.units] == ["1C", "2A"]
        assert [(i.record_id, i.kind) for i in report.issues] == [("2B[0]", "malformed-history")]

    def test_start_without_history_needs_opening_date(self, store, units):
        source = {"3C": {"startingBalance": 100}}
        report = CreditLedgerService(store).rebuild_histories("MTC", source, dry_run=True)
        assert report.issues[0].kind == "unnormalizable"

        report = CreditLedgerService(store).rebuild_histories(
            "MTC", source, opening_timestamp="2025-07-01", dry_run=True
        )
        assert amounts(report, "3C") == [10000]


class TestBuildUnitHistory:

    def test_unnormalizable_becomes_integrity_error(self, store):
        with pytest.raises(DataIntegrityError):
            CreditLedgerService(store).build_unit_history("u", 100, [])
