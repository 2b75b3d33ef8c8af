"""
Settings Repository - key/value settings stored in the Settings tab

Keys: GMAIL_SEARCH_LABEL, GMAIL_PROCESSED_LABEL, AI_API_KEY, LAST_SYNC.
Missing or blank values fall back to the StoreSettings defaults. The legacy
key GEMINI_API_KEY is read as AI_API_KEY.
"""
from datetime import datetime
from typing import Any, List, Optional

import structlog

from packages.common.database import SETTINGS_RANGE, SETTINGS_TAB
from packages.common.schemas.ticket import StoreSettings

logger = structlog.get_logger()

KEY_ALIASES = {"GEMINI_API_KEY": "AI_API_KEY"}


def _cell(row: List[Any], index: int) -> str:
    return str(row[index]).strip() if len(row) > index and row[index] is not None else ""


class SettingsRepository:
    """Read and update the Settings tab of one spreadsheet"""

    def __init__(self, store, spreadsheet_id: str):
        self.store = store
        self.spreadsheet_id = spreadsheet_id

    async def get_settings(self) -> StoreSettings:
        rows = await self.store.read_range(self.spreadsheet_id, SETTINGS_RANGE)
        values = {}
        for row in rows:
            key = KEY_ALIASES.get(_cell(row, 0), _cell(row, 0))
            value = _cell(row, 1)
            if key in StoreSettings.model_fields and value:
                values[key] = value

        settings = StoreSettings(**values)
        logger.debug("store_settings_loaded",
                     search_label=settings.GMAIL_SEARCH_LABEL,
                     processed_label=settings.GMAIL_PROCESSED_LABEL,
                     last_sync=settings.LAST_SYNC)
        return settings

    async def update_ai_key(self, key: str) -> None:
        await self._write_value("AI_API_KEY", str(key or "").strip())

    async def update_last_sync(self, when: Optional[datetime] = None) -> str:
        """Stamp LAST_SYNC with a local timestamp and return the text written"""
        stamp = (when or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        await self._write_value("LAST_SYNC", stamp)
        return stamp

    async def _write_value(self, key: str, value: str) -> None:
        rows = await self.store.read_range(self.spreadsheet_id, SETTINGS_RANGE)
        for index, row in enumerate(rows):
            if KEY_ALIASES.get(_cell(row, 0), _cell(row, 0)) == key:
                await self.store.write_range(
                    self.spreadsheet_id, f"{SETTINGS_TAB}!A{index + 1}:B{index + 1}", [[key, value]]
                )
                break
        else:
            await self.store.append_rows(self.spreadsheet_id, f"{SETTINGS_TAB}!A:B", [[key, value]])

        logger.info("store_setting_updated", key=key)
