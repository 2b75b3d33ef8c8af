"""
Spreadsheet database layout and bootstrap

The OmniTicket database is a single spreadsheet with four tabs:
- Settings: key/value pairs (A1:B4)
- Gastos: the ledger, one row per line item plus one Total Row per ticket
- Rules: user rules, header in row 1
- Mapping_Cache: raw → simplified product names, no header
"""
from typing import List

import structlog

from packages.common.errors import DatabaseNotFoundError

logger = structlog.get_logger()

SETTINGS_TAB = "Settings"
LEDGER_TAB = "Gastos"
RULES_TAB = "Rules"
MAPPING_TAB = "Mapping_Cache"

SETTINGS_RANGE = f"{SETTINGS_TAB}!A1:B4"
LEDGER_APPEND_RANGE = f"{LEDGER_TAB}!A:I"
LEDGER_READ_RANGE = f"{LEDGER_TAB}!A2:I10000"
RULES_APPEND_RANGE = f"{RULES_TAB}!A:C"
RULES_READ_RANGE = f"{RULES_TAB}!A2:C1000"
MAPPING_RANGE = f"{MAPPING_TAB}!A:B"

LEDGER_HEADER = [
    "ID Ticket", "Tienda", "Fecha", "Producto", "Categoría",
    "Cantidad", "P. Unitario", "Descuento", "Total Línea",
]
RULES_HEADER = ["Original_Pattern", "Normalized_Name", "Category"]

DEFAULT_SETTINGS_ROWS: List[List[str]] = [
    ["GMAIL_SEARCH_LABEL", "OmniTicket"],
    ["GMAIL_PROCESSED_LABEL", "OmniTicket/Procesado"],
    ["AI_API_KEY", ""],
    ["LAST_SYNC", "Nunca"],
]


async def find_database(store, name: str) -> str:
    """
    Locate the database spreadsheet by file name.

    Raises:
        DatabaseNotFoundError: If no spreadsheet with that name exists
    """
    spreadsheet_id = await store.find_spreadsheet(name)
    if not spreadsheet_id:
        raise DatabaseNotFoundError("drive", f"Spreadsheet '{name}' not found", 404)
    return spreadsheet_id


async def ensure_database(store, name: str) -> str:
    """
    Find the database spreadsheet, creating and seeding it if absent.

    Args:
        store: GoogleSheetsStore (needs Drive lookup and spreadsheet creation)
        name: Spreadsheet file name

    Returns:
        Spreadsheet id
    """
    try:
        return await find_database(store, name)
    except DatabaseNotFoundError:
        logger.info("database_not_found_creating", name=name)

    spreadsheet_id = await store.create_spreadsheet(
        name,
        tabs=[
            {"title": SETTINGS_TAB},
            {"title": LEDGER_TAB, "gridProperties": {"frozenRowCount": 1}},
            {"title": RULES_TAB, "gridProperties": {"frozenRowCount": 1}},
            {"title": MAPPING_TAB},
        ],
    )

    await store.batch_write(spreadsheet_id, [
        {"range": SETTINGS_RANGE, "values": DEFAULT_SETTINGS_ROWS},
        {"range": f"{LEDGER_TAB}!A1:I1", "values": [LEDGER_HEADER]},
        {"range": f"{RULES_TAB}!A1:C1", "values": [RULES_HEADER]},
    ])

    logger.info("database_created", name=name, spreadsheet_id=spreadsheet_id)
    return spreadsheet_id
