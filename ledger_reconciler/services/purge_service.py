"""
Client data service — backup and purge of a client's whole tree.

Both walk the declared collection tree iteratively through the
store. A purge commits one bounded batch at a time; if it stops
part-way, running it again finishes the job.
"""

import logging

from ledger_reconciler.errors import ConfigurationError
from ledger_reconciler.models.client import Client
from ledger_reconciler.schemas.report import PurgeReport
from ledger_reconciler.services.store import LedgerStore

logger = logging.getLogger(__name__)


class ClientDataService:

    def __init__(self, store: LedgerStore):
        self.store = store

    def export_client(self, client_id: str) -> dict[str, list[dict]]:
        if self.store.get(Client, client_id, client_id) is None:
            raise ConfigurationError("Client not found", client_id=client_id, resource="client")
        return self.store.export_tree(client_id)

    def purge_client(self, client_id: str, dry_run: bool = False) -> PurgeReport:
        """
        Delete the client and everything under it.

        A client that is already gone is not an error: the previous
        run finished its last batch.
        """
        deleted, batches = self.store.delete_tree(client_id, dry_run=dry_run)
        logger.info(
            "%s %d document(s) for %s in %d batch(es)",
            "Would delete" if dry_run else "Deleted",
            sum(deleted.values()), client_id, batches,
        )
        return PurgeReport(
            client_id=client_id,
            deleted=deleted,
            batches_committed=batches,
            dry_run=dry_run,
        )
