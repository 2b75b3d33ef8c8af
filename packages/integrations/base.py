"""
Collaborator Interfaces

Defines the contracts the core consumes for the mailbox, the spreadsheet
store and the AI model. Gmail, Google Sheets and Claude adapters implement
them; tests swap in in-memory fakes without touching calling code.
"""
from typing import Any, Dict, List, Optional, Protocol


class MailboxClient(Protocol):
    """
    Protocol for mailbox providers.

    Item ids are opaque (Gmail thread ids in production).
    """

    async def search(self, query: str) -> List[str]:
        """
        Find items matching a provider search query.

        Args:
            query: Provider query string (e.g. "label:A -label:B")

        Returns:
            Item ids in provider order
        """
        ...

    async def fetch_content(self, item_id: str) -> str:
        """
        Fetch the full decoded text of an item.

        Raises:
            CollaboratorError: If the item cannot be fetched
        """
        ...

    async def apply_label(self, item_id: str, label_name: str) -> None:
        """Attach a label to an item, creating the label if it does not exist"""
        ...


class SpreadsheetStore(Protocol):
    """
    Protocol for the spreadsheet-as-database transport.

    Ranges use A1 notation ("Gastos!A:I", "Rules!A2:C1000").
    """

    async def append_rows(self, spreadsheet_id: str, range_name: str, rows: List[List[Any]]) -> None:
        ...

    async def read_range(self, spreadsheet_id: str, range_name: str) -> List[List[Any]]:
        """Rows of the range; missing trailing cells are simply absent"""
        ...

    async def write_range(self, spreadsheet_id: str, range_name: str, rows: List[List[Any]]) -> None:
        ...


class ModelClient(Protocol):
    """Protocol for the hosted AI model (black box: prompt in, JSON text out)"""

    async def infer(
        self,
        prompt: str,
        output_schema: Dict[str, Any],
        *,
        system: Optional[str] = None,
    ) -> str:
        """
        Run the model and return raw JSON text shaped by ``output_schema``.

        Raises:
            ModelError: If the call fails or the model returns nothing usable
        """
        ...
