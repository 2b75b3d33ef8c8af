"""
Extraction Module - AI ticket extraction behind a strict validation boundary

    raw email text → model (ticket schema) → validate_ticket → TicketRecord
"""
from packages.domain.extraction.ticket_extractor import TicketExtractor
from packages.domain.extraction.validator import parse_ticket_json, validate_ticket

__all__ = [
    "TicketExtractor",
    "parse_ticket_json",
    "validate_ticket",
]
