"""
Ticket schemas (Pydantic models)

Wire format produced by the AI model uses Spanish keys (tienda, fecha,
nombre, precio_unitario, ...). Models accept those aliases and the English
field names; everything downstream of the validator uses the English names.
"""
import math
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Reserved product name of the synthetic per-ticket total row
TOTAL_SENTINEL = "--- TOTAL TICKET ---"
TOTAL_CATEGORY = "TOTAL"
DEFAULT_CATEGORY = "Otros"


def coerce_number(value) -> Decimal:
    """Accept JSON numbers only (no bools, no numeric strings)"""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("expected a finite number")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class LineItem(BaseModel):
    """One product line on a ticket"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., validation_alias=AliasChoices("nombre", "name"))
    category: str = Field(default=DEFAULT_CATEGORY, validation_alias=AliasChoices("categoria", "category"))
    unit_price: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("precio_unitario", "unit_price"))
    quantity: Decimal = Field(default=Decimal("1"), validation_alias=AliasChoices("cantidad", "quantity"))
    discount: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("descuento", "discount"))
    line_total: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("precio_total_linea", "line_total"))

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("product name is required")
        if v.strip() == TOTAL_SENTINEL:
            raise ValueError("product name is reserved for the ticket total")
        return v.strip()

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        """Missing or blank category falls back to the default bucket"""
        if v is None:
            return DEFAULT_CATEGORY
        text = str(v).strip()
        return text or DEFAULT_CATEGORY

    @field_validator("unit_price", "quantity", "discount", "line_total", mode="before")
    @classmethod
    def validate_numbers(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return coerce_number(v)


class TicketRecord(BaseModel):
    """
    One purchase event.

    Line totals are not reconciled against total_amount; the model output is
    only shape-checked.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    store: str = Field(..., validation_alias=AliasChoices("tienda", "store"))
    date: str = Field(..., validation_alias=AliasChoices("fecha", "date"))
    items: List[LineItem] = Field(default_factory=list)
    total_amount: Decimal = Field(
        ..., ge=0, validation_alias=AliasChoices("total_ticket", "total_amount", "total")
    )

    @field_validator("store", mode="before")
    @classmethod
    def validate_store(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("store is required")
        return v.strip()

    @field_validator("total_amount", mode="before")
    @classmethod
    def validate_total(cls, v):
        return coerce_number(v)

    def to_rows(self) -> List[list]:
        """
        Flatten into ledger rows: one per item plus the Total Row.

        Columns: ticketId, store, date, product, category, quantity,
        unitPrice, discount, lineTotal
        """
        rows = [
            [
                self.id, self.store, self.date, item.name, item.category,
                float(item.quantity), float(item.unit_price),
                float(item.discount), float(item.line_total),
            ]
            for item in self.items
        ]
        rows.append([
            self.id, self.store, self.date, TOTAL_SENTINEL, TOTAL_CATEGORY,
            "", "", "", float(self.total_amount),
        ])
        return rows


class Rule(BaseModel):
    """User-authored substring override: pattern → normalized name + category"""
    pattern: str
    normalized: str
    category: str = DEFAULT_CATEGORY


class NameMapping(BaseModel):
    """Cached raw → simplified product name pair"""
    model_config = ConfigDict(populate_by_name=True)

    original: str
    simplified: str = Field(..., validation_alias=AliasChoices("simplificado", "simplified"))


class SyncStatus(str, Enum):
    """Outcome of one mailbox item in a sync run"""
    SUCCESS = "success"
    ERROR = "error"


class SyncResult(BaseModel):
    """Per-item result of a sync run, in discovery order"""
    source_id: str
    status: SyncStatus
    ticket_id: Optional[str] = None
    error: Optional[str] = None


class StoreSettings(BaseModel):
    """Key-value settings kept in the Settings tab of the spreadsheet"""
    GMAIL_SEARCH_LABEL: str = "OmniTicket"
    GMAIL_PROCESSED_LABEL: str = "OmniTicket/Procesado"
    AI_API_KEY: str = ""
    LAST_SYNC: str = "Nunca"


class HistoryTicket(BaseModel):
    """One ticket in the purchase history view"""
    id: str
    store: str
    date: str
    total: float


class DashboardStats(BaseModel):
    """Headline figures over a set of ledger rows"""
    total_spent: float
    avg_ticket: float
    top_category: str
    ticket_count: int


class LensEntry(BaseModel):
    """Aggregated spend for one product, category or store"""
    name: str
    value: float
