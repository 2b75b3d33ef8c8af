"""
Google Sheets store adapter

Implements SpreadsheetStore over the Sheets v4 values API, plus the Drive
lookup and spreadsheet creation used to bootstrap the database file.
"""
import asyncio
from typing import Any, Dict, List, Optional

import structlog
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from packages.integrations.google_auth import translate_http_error

logger = structlog.get_logger()

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


class GoogleSheetsStore:
    """Spreadsheet-as-database transport backed by googleapiclient"""

    def __init__(self, credentials, sheets_service=None, drive_service=None):
        """
        Args:
            credentials: google.auth credentials with spreadsheets + drive.file scopes
            sheets_service: Prebuilt Sheets discovery client (tests)
            drive_service: Prebuilt Drive discovery client (tests)
        """
        self.sheets = sheets_service or build("sheets", "v4", credentials=credentials, cache_discovery=False)
        self.drive = drive_service or build("drive", "v3", credentials=credentials, cache_discovery=False)

    async def _execute(self, request):
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise translate_http_error("sheets", e) from e

    async def append_rows(self, spreadsheet_id: str, range_name: str, rows: List[List[Any]]) -> None:
        await self._execute(
            self.sheets.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=range_name,
                valueInputOption="USER_ENTERED",
                insertDataOption="INSERT_ROWS",
                body={"values": rows},
            )
        )
        logger.info("sheets_rows_appended", range=range_name, rows=len(rows))

    async def read_range(self, spreadsheet_id: str, range_name: str) -> List[List[Any]]:
        response = await self._execute(
            self.sheets.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=range_name)
        )
        return response.get("values", [])

    async def write_range(self, spreadsheet_id: str, range_name: str, rows: List[List[Any]]) -> None:
        await self._execute(
            self.sheets.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=range_name,
                valueInputOption="RAW",
                body={"values": rows},
            )
        )
        logger.info("sheets_range_written", range=range_name, rows=len(rows))

    async def batch_write(self, spreadsheet_id: str, data: List[Dict[str, Any]]) -> None:
        """Write several ranges at once ([{"range": ..., "values": ...}])"""
        await self._execute(
            self.sheets.spreadsheets().values().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"valueInputOption": "RAW", "data": data},
            )
        )

    async def find_spreadsheet(self, name: str) -> Optional[str]:
        """Return the id of the first non-trashed spreadsheet called ``name``"""
        escaped = name.replace("'", "\\'")
        query = f"name = '{escaped}' and mimeType = '{SPREADSHEET_MIME_TYPE}' and trashed = false"
        try:
            response = await asyncio.to_thread(
                self.drive.files().list(q=query, fields="files(id, name)").execute
            )
        except HttpError as e:
            raise translate_http_error("drive", e) from e

        files = response.get("files", [])
        return str(files[0]["id"]) if files else None

    async def create_spreadsheet(self, title: str, tabs: List[Dict[str, Any]]) -> str:
        """
        Create a spreadsheet.

        Args:
            title: File name
            tabs: Sheet properties dicts ({"title": ..., "gridProperties": ...})

        Returns:
            New spreadsheet id
        """
        body = {
            "properties": {"title": title},
            "sheets": [{"properties": tab} for tab in tabs],
        }
        response = await self._execute(self.sheets.spreadsheets().create(body=body))
        spreadsheet_id = str(response.get("spreadsheetId", ""))
        logger.info("spreadsheet_created", title=title, spreadsheet_id=spreadsheet_id)
        return spreadsheet_id
