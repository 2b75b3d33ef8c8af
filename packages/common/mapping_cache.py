"""
Product Name Mapping Cache - raw → simplified names learned from the AI

The Mapping_Cache tab is append-only in practice: new pairs are added to the
end of the collection and the whole collection is written back. Duplicate
originals can therefore exist; the first occurrence is authoritative.

Cache Strategy:
1. First time seeing a raw name → AI batch call → pair stored here
2. Next time → cache hit, no AI call
"""
from typing import Dict, List

import structlog

from packages.common.database import MAPPING_RANGE
from packages.common.schemas.ticket import NameMapping

logger = structlog.get_logger()


class MappingCacheRepository:
    """Repository for the name mapping cache of one spreadsheet"""

    def __init__(self, store, spreadsheet_id: str):
        self.store = store
        self.spreadsheet_id = spreadsheet_id

    async def get_mappings(self) -> List[NameMapping]:
        """All cached pairs in storage order (rows with fewer than 2 cells skipped)"""
        rows = await self.store.read_range(self.spreadsheet_id, MAPPING_RANGE)
        return [
            NameMapping(original=str(row[0]), simplified=str(row[1]))
            for row in rows
            if len(row) >= 2
        ]

    async def get_cache(self) -> Dict[str, str]:
        """original → simplified lookup, first occurrence wins"""
        return mappings_to_cache(await self.get_mappings())

    async def save_mappings(self, mappings: List[NameMapping]) -> None:
        """Overwrite the whole collection"""
        values = [[m.original, m.simplified] for m in mappings]
        await self.store.write_range(self.spreadsheet_id, MAPPING_RANGE, values)

    async def append_mappings(self, new_mappings: List[NameMapping]) -> int:
        """
        Read-modify-write: existing collection + new pairs.

        Returns:
            Size of the collection after the write
        """
        existing = await self.get_mappings()
        updated = existing + list(new_mappings)
        await self.save_mappings(updated)

        logger.info("mapping_cache_extended",
                    existing=len(existing),
                    added=len(new_mappings),
                    total=len(updated))
        return len(updated)


def mappings_to_cache(mappings: List[NameMapping]) -> Dict[str, str]:
    cache: Dict[str, str] = {}
    for mapping in mappings:
        cache.setdefault(mapping.original, mapping.simplified)
    return cache
