"""
Ledger insights - history, headline stats and spend breakdowns

Works on raw ledger rows as read from the sheet:
[ticketId, store, date, product, category, quantity, unitPrice, discount, lineTotal]

Total Rows carry the ticket total; every other row carries product spend.
Product and category aggregation never includes the Total Row.
"""
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from packages.common.schemas.ticket import (
    TOTAL_SENTINEL,
    DashboardStats,
    HistoryTicket,
    LensEntry,
    Rule,
)
from packages.domain.normalization.rules import apply_rule_or_mapping

ID, STORE, DATE, PRODUCT, CATEGORY = 0, 1, 2, 3, 4
LINE_TOTAL = 8

NO_CATEGORY = "Ninguna"


class Lens(str, Enum):
    """Dimension used to break spend down"""
    PRODUCTS = "products"
    CATEGORIES = "categories"
    STORES = "stores"


def safe_text(value: Any) -> str:
    return "" if value is None else str(value)


def safe_num(value: Any) -> float:
    """
    Parse a sheet cell as an amount.

    Accepts numbers and text like "12,50 €" or " 3.4 "; anything
    unparseable counts as 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"\s", "", safe_text(value) or "0").replace(",", ".", 1)
    cleaned = re.sub(r"[^-0-9.]", "", cleaned)
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _cell(row: List[Any], index: int) -> str:
    return safe_text(row[index]) if len(row) > index else ""


def is_total_row(row: List[Any]) -> bool:
    return _cell(row, PRODUCT) == TOTAL_SENTINEL


def build_history(rows: Iterable[List[Any]]) -> List[HistoryTicket]:
    """
    One HistoryTicket per ticket id, total taken from its Total Row.

    Tickets without a Total Row report a total of 0. Sorted by date,
    newest first.
    """
    history: Dict[str, HistoryTicket] = {}
    for row in rows:
        ticket_id = _cell(row, ID)
        if not ticket_id:
            continue
        if is_total_row(row):
            history[ticket_id] = HistoryTicket(
                id=ticket_id,
                store=_cell(row, STORE),
                date=_cell(row, DATE),
                total=safe_num(row[LINE_TOTAL] if len(row) > LINE_TOTAL else 0),
            )
        elif ticket_id not in history:
            history[ticket_id] = HistoryTicket(
                id=ticket_id, store=_cell(row, STORE), date=_cell(row, DATE), total=0.0
            )

    return sorted(history.values(), key=lambda t: t.date, reverse=True)


def filter_by_date(rows: Iterable[List[Any]], start: Optional[str], end: Optional[str]) -> List[List[Any]]:
    """Keep rows whose ISO date text falls within [start, end] (inclusive)"""
    kept = []
    for row in rows:
        date = _cell(row, DATE)
        if start and date < start:
            continue
        if end and date > end:
            continue
        kept.append(row)
    return kept


def normalize_rows(rows: Iterable[List[Any]], rules: List[Rule], mappings: Dict[str, str]) -> List[List[Any]]:
    """Copy of ``rows`` with product/category replaced by rule or cached names"""
    normalized = []
    for row in rows:
        name = _cell(row, PRODUCT)
        if not name or name == TOTAL_SENTINEL:
            normalized.append(list(row))
            continue
        new_name, new_category = apply_rule_or_mapping(name, _cell(row, CATEGORY), rules, mappings)
        new_row = list(row) + [""] * max(0, LINE_TOTAL + 1 - len(row))
        new_row[PRODUCT] = new_name
        new_row[CATEGORY] = new_category
        normalized.append(new_row)
    return normalized


def dashboard_stats(rows: Iterable[List[Any]]) -> DashboardStats:
    """Total spend and ticket count from Total Rows; top category from item rows"""
    total = 0.0
    count = 0
    by_category: Dict[str, float] = {}

    for row in rows:
        amount = safe_num(row[LINE_TOTAL] if len(row) > LINE_TOTAL else 0)
        if is_total_row(row):
            total += amount
            count += 1
        else:
            category = _cell(row, CATEGORY)
            by_category[category] = by_category.get(category, 0.0) + amount

    top_category = NO_CATEGORY
    best = None
    for category, value in by_category.items():
        if best is None or value > best:
            best, top_category = value, category

    return DashboardStats(
        total_spent=total,
        avg_ticket=total / count if count else 0.0,
        top_category=top_category,
        ticket_count=count,
    )


def lens_breakdown(rows: Iterable[List[Any]], lens: Lens) -> List[LensEntry]:
    """Spend per product, category or store, largest first (Total Rows excluded)"""
    column = {Lens.PRODUCTS: PRODUCT, Lens.CATEGORIES: CATEGORY, Lens.STORES: STORE}[Lens(lens)]
    totals: Dict[str, float] = {}

    for row in rows:
        key = _cell(row, column)
        if is_total_row(row) or not key:
            continue
        totals[key] = totals.get(key, 0.0) + safe_num(row[LINE_TOTAL] if len(row) > LINE_TOTAL else 0)

    entries = [LensEntry(name=name, value=value) for name, value in totals.items()]
    return sorted(entries, key=lambda e: e.value, reverse=True)
