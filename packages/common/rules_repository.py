"""
Rules Repository - user normalization rules in the Rules tab

Row order is the rule precedence order; there is no priority column.
"""
from typing import Any, List

import structlog

from packages.common.database import RULES_APPEND_RANGE, RULES_READ_RANGE
from packages.common.schemas.ticket import DEFAULT_CATEGORY, Rule

logger = structlog.get_logger()


def _cell(row: List[Any], index: int) -> str:
    return str(row[index]).strip() if len(row) > index and row[index] is not None else ""


class RulesRepository:
    """Read and append rules of one spreadsheet"""

    def __init__(self, store, spreadsheet_id: str):
        self.store = store
        self.spreadsheet_id = spreadsheet_id

    async def get_rules(self) -> List[Rule]:
        rows = await self.store.read_range(self.spreadsheet_id, RULES_READ_RANGE)
        rules = [
            Rule(
                pattern=_cell(row, 0),
                normalized=_cell(row, 1),
                category=_cell(row, 2) or DEFAULT_CATEGORY,
            )
            for row in rows
            if row
        ]
        logger.debug("rules_loaded", count=len(rules))
        return rules

    async def add_rule(self, rule: Rule) -> None:
        await self.store.append_rows(
            self.spreadsheet_id,
            RULES_APPEND_RANGE,
            [[rule.pattern, rule.normalized, rule.category]],
        )
        logger.info("rule_added", pattern=rule.pattern, normalized=rule.normalized, category=rule.category)
