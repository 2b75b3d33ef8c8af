"""
Error taxonomy for the ingestion and normalization core

- TicketValidationError: AI output failed shape/required-field checks (per item)
- CollaboratorError: mailbox, spreadsheet or model call failed
- ResolutionError: the AI tier of name normalization failed (whole call)

The API layer maps these to HTTP responses; the core never renders them.
"""
from enum import Enum
from typing import Optional


class OmniTicketError(Exception):
    """Base class for all errors raised by the core"""


class ValidationErrorKind(str, Enum):
    """Why a raw AI ticket was rejected"""
    MISSING_STORE = "missing_store"
    INVALID_TOTAL = "invalid_total"
    INVALID_ITEM = "invalid_item"
    MALFORMED = "malformed"
    MALFORMED_JSON = "malformed_json"


class TicketValidationError(OmniTicketError):
    """Raw AI output could not be turned into a TicketRecord"""

    def __init__(self, kind: ValidationErrorKind, message: str):
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.detail = message


class CollaboratorError(OmniTicketError):
    """An external collaborator (mailbox, store, model) failed"""

    def __init__(self, collaborator: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
        self.status_code = status_code


class AuthenticationError(CollaboratorError):
    """Credentials were rejected (HTTP 401/403)"""


class DatabaseNotFoundError(CollaboratorError):
    """The OmniTicket spreadsheet does not exist for this account"""


class ModelError(CollaboratorError):
    """The AI model call failed or returned nothing usable"""


class ResolutionError(OmniTicketError):
    """AI-tier failure during name normalization; no mapping is returned"""
