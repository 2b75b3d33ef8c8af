"""
Ticket Extractor - email text → validated TicketRecord via the AI model
"""
import structlog

from packages.common.errors import TicketValidationError
from packages.common.schemas.ticket import TicketRecord
from packages.domain.extraction.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    TICKET_OUTPUT_SCHEMA,
    build_extraction_prompt,
)
from packages.domain.extraction.validator import parse_ticket_json
from packages.integrations.base import ModelClient

logger = structlog.get_logger()


class TicketExtractor:
    """
    Runs the extraction prompt and validates the answer.

    Usage:
        extractor = TicketExtractor(model)
        ticket = await extractor.extract(email_text, ticket_id="...")
    """

    def __init__(self, model: ModelClient):
        self.model = model

    async def extract(self, email_content: str, ticket_id: str) -> TicketRecord:
        """
        Extract one ticket from an email body.

        Raises:
            ModelError: If the model call fails
            TicketValidationError: If the answer is not a valid ticket
        """
        raw = await self.model.infer(
            build_extraction_prompt(email_content, ticket_id),
            TICKET_OUTPUT_SCHEMA,
            system=EXTRACTION_SYSTEM_PROMPT,
        )

        try:
            ticket = parse_ticket_json(raw, ticket_id=ticket_id)
        except TicketValidationError as e:
            logger.warning("ticket_validation_failed",
                           ticket_id=ticket_id,
                           kind=e.kind.value,
                           error=e.detail,
                           response=raw[:500])
            raise

        logger.info("ticket_extracted",
                    ticket_id=ticket.id,
                    store=ticket.store,
                    date=ticket.date,
                    items=len(ticket.items),
                    total=float(ticket.total_amount))
        return ticket
