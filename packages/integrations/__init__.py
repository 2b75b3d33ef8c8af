"""
Integrations Package

Adapters for the external collaborators the core consumes:
    - GmailMailbox: labeled receipt threads (MailboxClient)
    - GoogleSheetsStore: spreadsheet-as-database (SpreadsheetStore)
    - ClaudeModelClient: structured extraction/normalization (ModelClient)
"""
from packages.integrations.base import MailboxClient, ModelClient, SpreadsheetStore
from packages.integrations.gmail_client import GmailMailbox
from packages.integrations.model_client import ClaudeModelClient
from packages.integrations.sheets_store import GoogleSheetsStore

__all__ = [
    "MailboxClient",
    "ModelClient",
    "SpreadsheetStore",
    "GmailMailbox",
    "ClaudeModelClient",
    "GoogleSheetsStore",
]
