"""
Session context - everything one user session needs, passed explicitly

Replaces process-wide client state (access token, spreadsheet id): the API
and the worker build a SessionContext per request/task and hand it to the
sync engine and the name resolver.
"""
from dataclasses import dataclass, field
from typing import Optional

import structlog

from packages.common.config import Settings, get_settings
from packages.common.database import ensure_database, find_database
from packages.common.ledger_repository import LedgerRepository
from packages.common.mapping_cache import MappingCacheRepository
from packages.common.rules_repository import RulesRepository
from packages.common.settings_repository import SettingsRepository
from packages.integrations.base import MailboxClient, ModelClient, SpreadsheetStore

logger = structlog.get_logger()


@dataclass
class SessionContext:
    """Collaborators and the database id for one session"""
    mailbox: MailboxClient
    store: SpreadsheetStore
    model: ModelClient
    spreadsheet_id: str
    settings: Settings = field(default_factory=get_settings)

    @property
    def ledger(self) -> LedgerRepository:
        return LedgerRepository(self.store, self.spreadsheet_id)

    @property
    def rules(self) -> RulesRepository:
        return RulesRepository(self.store, self.spreadsheet_id)

    @property
    def mapping_cache(self) -> MappingCacheRepository:
        return MappingCacheRepository(self.store, self.spreadsheet_id)

    @property
    def store_settings(self) -> SettingsRepository:
        return SettingsRepository(self.store, self.spreadsheet_id)


async def open_session(
    settings: Optional[Settings] = None,
    access_token: Optional[str] = None,
    create_database: bool = True,
) -> SessionContext:
    """
    Build a production session (Gmail + Google Sheets + Claude).

    Args:
        settings: Process settings (defaults to get_settings())
        access_token: User OAuth access token; service account used if None
        create_database: Create the spreadsheet when it does not exist yet

    Returns:
        Ready SessionContext

    Raises:
        AuthenticationError: If Google rejects or lacks credentials
        DatabaseNotFoundError: If the spreadsheet is missing and create_database is False
    """
    from packages.integrations.gmail_client import GmailMailbox
    from packages.integrations.google_auth import build_credentials
    from packages.integrations.model_client import ClaudeModelClient
    from packages.integrations.sheets_store import GoogleSheetsStore

    settings = settings or get_settings()
    credentials = build_credentials(
        access_token=access_token,
        service_account_json=settings.google_service_account_json,
        impersonate_email=settings.gmail_impersonate_email,
    )
    store = GoogleSheetsStore(credentials)

    if settings.spreadsheet_id:
        spreadsheet_id = settings.spreadsheet_id
    elif create_database:
        spreadsheet_id = await ensure_database(store, settings.spreadsheet_name)
    else:
        spreadsheet_id = await find_database(store, settings.spreadsheet_name)

    # Environment key wins; otherwise the key the user saved in the Settings tab
    api_key = settings.anthropic_api_key
    if not api_key:
        stored = await SettingsRepository(store, spreadsheet_id).get_settings()
        api_key = stored.AI_API_KEY or None

    model = ClaudeModelClient(api_key=api_key, model=settings.ai_model, max_tokens=settings.ai_max_tokens)

    logger.info("session_opened",
                spreadsheet_id=spreadsheet_id,
                user_token=access_token is not None)

    return SessionContext(
        mailbox=GmailMailbox(credentials),
        store=store,
        model=model,
        spreadsheet_id=spreadsheet_id,
        settings=settings,
    )
