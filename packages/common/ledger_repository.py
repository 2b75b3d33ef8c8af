"""
Ledger Repository - ticket rows in the Gastos tab

Every persisted ticket occupies one row per line item plus exactly one
Total Row (product = TOTAL_SENTINEL, category = TOTAL, amount = ticket
total). Both kinds of row are written in a single append so a ticket never
lands without its Total Row.
"""
from typing import Any, List, Optional

import structlog

from packages.common.database import LEDGER_APPEND_RANGE, LEDGER_READ_RANGE
from packages.common.schemas.ticket import HistoryTicket, TicketRecord
from packages.domain.insights.ledger import build_history, filter_by_date

logger = structlog.get_logger()


class LedgerRepository:
    """Append and read ledger rows of one spreadsheet"""

    def __init__(self, store, spreadsheet_id: str):
        self.store = store
        self.spreadsheet_id = spreadsheet_id

    async def append_ticket(self, ticket: TicketRecord) -> int:
        """
        Append a validated ticket.

        Returns:
            Number of rows written (items + 1)
        """
        rows = ticket.to_rows()
        await self.store.append_rows(self.spreadsheet_id, LEDGER_APPEND_RANGE, rows)

        logger.info("ticket_rows_appended",
                    ticket_id=ticket.id,
                    store=ticket.store,
                    items=len(ticket.items),
                    rows=len(rows),
                    total=float(ticket.total_amount))
        return len(rows)

    async def fetch_line_items(self) -> List[List[Any]]:
        """All ledger rows below the header, including Total Rows"""
        return await self.store.read_range(self.spreadsheet_id, LEDGER_READ_RANGE)

    async def fetch_history(self, start: Optional[str] = None, end: Optional[str] = None) -> List[HistoryTicket]:
        """One entry per ticket, newest first, optionally within [start, end]"""
        rows = filter_by_date(await self.fetch_line_items(), start, end)
        return build_history(rows)
