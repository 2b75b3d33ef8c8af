"""
Sync Engine - labeled mailbox → validated ticket rows in the ledger

Flow:
1. INIT: read store settings (labels)
2. DISCOVER: items carrying the search label but not the processed label
3. Per item, one at a time:
   a. fetch decoded content
   b. assign a ticket id
   c. AI extraction + validation
   d. append item rows and the Total Row
   e. apply the processed label
4. FINALIZE: stamp LAST_SYNC (best effort)

Failures in INIT/DISCOVER abort the run. A failure inside one item is
recorded as an error result and the run moves on to the next item. An item
that fails before step (e) stays unlabeled and is picked up again next run.
"""
import uuid
from typing import List, Optional

import structlog

from packages.common.metrics import SYNC_ITEMS, SYNC_RUNS
from packages.common.schemas.ticket import SyncResult, SyncStatus
from packages.domain.extraction.ticket_extractor import TicketExtractor
from packages.domain.sync.progress import ProgressCallback

logger = structlog.get_logger()

# Namespace for deterministic ticket ids derived from mailbox item ids
TICKET_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "omniticket:mailbox-item")

MSG_CONNECTING = "Validando conexión con base de datos..."
MSG_DISCOVERING = "Buscando nuevos tickets en Gmail..."
MSG_NOTHING_PENDING = "Todo al día. No hay tickets pendientes."
MSG_DONE = "¡Sincronización exitosa!"


def build_search_query(search_label: str, processed_label: str) -> str:
    return f"label:{search_label} -label:{processed_label}"


def ticket_id_for(source_id: str, strategy: str = "random") -> str:
    """New ticket id: uuid4 per attempt, or uuid5 of the source id for 'source'"""
    if strategy == "source":
        return str(uuid.uuid5(TICKET_ID_NAMESPACE, source_id))
    return str(uuid.uuid4())


class SyncEngine:
    """
    Runs one sync over a session's mailbox, ledger and model.

    Usage:
        engine = SyncEngine(session)
        results = await engine.run(on_progress=print)
    """

    def __init__(self, session, extractor: Optional[TicketExtractor] = None):
        self.session = session
        self.extractor = extractor or TicketExtractor(session.model)
        self.id_strategy = session.settings.ticket_id_strategy

    async def run(self, on_progress: Optional[ProgressCallback] = None) -> List[SyncResult]:
        """
        Process every pending mailbox item.

        Returns:
            One SyncResult per discovered item, in discovery order

        Raises:
            CollaboratorError: If settings cannot be read or the mailbox query fails
        """
        progress = on_progress or (lambda message: None)

        # INIT
        progress(MSG_CONNECTING)
        store_settings = await self.session.store_settings.get_settings()

        # DISCOVER
        progress(MSG_DISCOVERING)
        query = build_search_query(store_settings.GMAIL_SEARCH_LABEL, store_settings.GMAIL_PROCESSED_LABEL)
        item_ids = await self.session.mailbox.search(query)

        logger.info("sync_discovered", query=query, pending=len(item_ids))

        if not item_ids:
            progress(MSG_NOTHING_PENDING)
            await self._stamp_last_sync()
            SYNC_RUNS.labels(outcome="empty").inc()
            return []

        results: List[SyncResult] = []
        for position, source_id in enumerate(item_ids, start=1):
            result = await self._process_item(
                source_id, position, len(item_ids), store_settings.GMAIL_PROCESSED_LABEL, progress
            )
            results.append(result)

        # FINALIZE
        await self._stamp_last_sync()
        progress(MSG_DONE)

        succeeded = sum(1 for r in results if r.status == SyncStatus.SUCCESS)
        SYNC_RUNS.labels(outcome="completed").inc()
        logger.info("sync_complete",
                    items=len(results),
                    succeeded=succeeded,
                    failed=len(results) - succeeded)
        return results

    async def _process_item(
        self,
        source_id: str,
        position: int,
        count: int,
        processed_label: str,
        progress: ProgressCallback,
    ) -> SyncResult:
        """Run one item end to end; any failure becomes an error result"""
        ticket_id = None
        try:
            progress(f"Procesando ticket {position} de {count}...")
            content = await self.session.mailbox.fetch_content(source_id)
            ticket_id = ticket_id_for(source_id, self.id_strategy)

            progress(f"Analizando con IA ({position}/{count})...")
            ticket = await self.extractor.extract(content, ticket_id)

            progress("Guardando datos en Sheets...")
            await self.session.ledger.append_ticket(ticket)
            await self.session.mailbox.apply_label(source_id, processed_label)

        except Exception as e:
            SYNC_ITEMS.labels(status="error").inc()
            logger.error("sync_item_failed",
                         source_id=source_id,
                         ticket_id=ticket_id,
                         error=str(e),
                         exc_info=True)
            return SyncResult(source_id=source_id, status=SyncStatus.ERROR, error=str(e) or type(e).__name__)

        SYNC_ITEMS.labels(status="success").inc()
        logger.info("sync_item_processed",
                    source_id=source_id,
                    ticket_id=ticket.id,
                    store=ticket.store,
                    items=len(ticket.items))
        return SyncResult(source_id=source_id, status=SyncStatus.SUCCESS, ticket_id=ticket.id)

    async def _stamp_last_sync(self) -> None:
        try:
            stamp = await self.session.store_settings.update_last_sync()
            logger.info("last_sync_updated", last_sync=stamp)
        except Exception as e:
            logger.warning("last_sync_update_failed", error=str(e))
