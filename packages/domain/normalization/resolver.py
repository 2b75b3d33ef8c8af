"""
Name Resolver - three-tier product name normalization

Precedence:
1. User rules (highest) - matched names are left out of the returned
   mapping; callers apply the rule itself at use time
2. Mapping cache - previously learned raw → simplified pairs
3. AI model (last resort) - one batch of at most 30 names per call

Newly learned pairs are appended to the persisted cache.

Example:
- "COCA COLA ZERO 2L PET" with rule "coca" → excluded (rule applies later)
- "LECHE ENTERA HACENDADO 1L" cached as "Leche Entera" → cache hit
- "YOG GRIEGO NAT 4X125" unknown → AI → "Yogur Griego" → cached
"""
import json
from typing import Dict, Iterable, List, Optional

import structlog

from packages.common.errors import OmniTicketError, ResolutionError
from packages.common.mapping_cache import MappingCacheRepository
from packages.common.metrics import AI_NORMALIZATION_BATCHES, NAME_RESOLUTIONS
from packages.common.rules_repository import RulesRepository
from packages.common.schemas.ticket import TOTAL_SENTINEL, NameMapping, Rule
from packages.domain.normalization.rules import match_rule
from packages.integrations.base import ModelClient

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 30

NORMALIZATION_OUTPUT_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "original": {"type": "string"},
            "simplificado": {"type": "string"},
        },
        "required": ["original", "simplificado"],
    },
}


def build_normalization_prompt(batch: List[str]) -> str:
    """Prompt asking for short generic names (max 3 words)"""
    listing = "\n".join(batch)
    return f"""Normaliza estos productos de supermercado a nombres genéricos breves (max 3 palabras).
Devuelve un elemento por producto con el nombre original exacto y su nombre simplificado.

Lista:
{listing}"""


def parse_normalization_response(raw: str) -> List[NameMapping]:
    """
    Parse the AI answer into pairs, stringifying non-text values.

    Raises:
        ValueError: If the answer is not an array of {original, simplificado}
    """
    data = json.loads(raw or "")
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")

    pairs: List[NameMapping] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"entry {index} is not an object")
        original = entry.get("original")
        simplified = entry.get("simplificado", entry.get("simplified"))
        if original is None or simplified is None:
            raise ValueError(f"entry {index} lacks original/simplificado")
        pairs.append(NameMapping(original=str(original).strip(), simplified=str(simplified).strip()))
    return pairs


def _usable(pair: NameMapping) -> bool:
    return bool(pair.original) and bool(pair.simplified) and TOTAL_SENTINEL not in (pair.original, pair.simplified)


class NameResolver:
    """
    Resolves raw product names to simplified names.

    Usage:
        resolver = NameResolver(model, MappingCacheRepository(store, sid))
        mapping = await resolver.resolve(names, rules, cache)
    """

    def __init__(
        self,
        model: ModelClient,
        cache_repository: MappingCacheRepository,
        rules_repository: Optional[RulesRepository] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.model = model
        self.cache_repository = cache_repository
        self.rules_repository = rules_repository
        self.batch_size = batch_size

    @classmethod
    def from_session(cls, session) -> "NameResolver":
        return cls(
            model=session.model,
            cache_repository=session.mapping_cache,
            rules_repository=session.rules,
            batch_size=session.settings.normalization_batch_size,
        )

    async def resolve(
        self,
        names: Iterable[str],
        rules: List[Rule],
        cache: Dict[str, str],
    ) -> Dict[str, str]:
        """
        Map raw names to simplified names.

        Args:
            names: Raw product names (duplicates, blanks and the Total Row marker are ignored)
            rules: User rules in precedence order
            cache: original → simplified from the mapping cache

        Returns:
            original → simplified for cache hits and newly learned names.
            Rule-matched names and names beyond the batch limit are absent.

        Raises:
            ResolutionError: If the AI tier fails; no partial mapping is returned
        """
        result: Dict[str, str] = {}
        pending: List[str] = []
        seen = set()
        rule_hits = 0

        for raw in names:
            name = str(raw or "").strip()
            if not name or name == TOTAL_SENTINEL or name in seen:
                continue
            seen.add(name)

            if match_rule(name, rules) is not None:
                rule_hits += 1
                continue

            cached = cache.get(name)
            if cached and cached != TOTAL_SENTINEL:
                result[name] = cached
                continue

            pending.append(name)

        NAME_RESOLUTIONS.labels(tier="rule").inc(rule_hits)
        NAME_RESOLUTIONS.labels(tier="cache").inc(len(result))

        logger.info("name_resolution_tiers",
                    candidates=len(seen),
                    rule_hits=rule_hits,
                    cache_hits=len(result),
                    pending=len(pending))

        if not pending:
            return result

        batch = pending[:self.batch_size]
        if len(pending) > len(batch):
            NAME_RESOLUTIONS.labels(tier="dropped").inc(len(pending) - len(batch))
            logger.info("name_resolution_batch_truncated",
                        batch_size=len(batch),
                        deferred=len(pending) - len(batch))

        learned = await self._learn_batch(batch)
        result.update({pair.original: pair.simplified for pair in learned})
        return result

    async def _learn_batch(self, batch: List[str]) -> List[NameMapping]:
        """Ask the model for one batch and persist the answer"""
        try:
            raw = await self.model.infer(build_normalization_prompt(batch), NORMALIZATION_OUTPUT_SCHEMA)
            answered = [pair for pair in parse_normalization_response(raw) if _usable(pair)]
            # Only names sent in this batch may be learned
            requested = set(batch)
            learned = [pair for pair in answered if pair.original in requested]
            if len(learned) < len(answered):
                logger.warning("ai_normalization_unrequested_pairs",
                               ignored=len(answered) - len(learned))
            await self.cache_repository.append_mappings(learned)
        except (OmniTicketError, ValueError) as e:
            AI_NORMALIZATION_BATCHES.labels(outcome="error").inc()
            logger.error("ai_normalization_failed",
                         batch_size=len(batch),
                         error=str(e),
                         exc_info=True)
            raise ResolutionError(f"AI normalization failed: {e}") from e

        AI_NORMALIZATION_BATCHES.labels(outcome="success").inc()
        NAME_RESOLUTIONS.labels(tier="ai").inc(len(learned))
        logger.info("ai_normalization_complete",
                    batch_size=len(batch),
                    learned=len(learned))
        return learned

    async def normalize_products(self, names: Iterable[str]) -> Dict[str, str]:
        """
        Load rules and cache from the store, then resolve ``names``.

        Raises:
            ResolutionError: If the AI tier fails
            CollaboratorError: If rules or cache cannot be read
        """
        if self.rules_repository is None:
            raise ValueError("normalize_products requires a rules repository")

        rules = await self.rules_repository.get_rules()
        cache = await self.cache_repository.get_cache()
        return await self.resolve(names, rules, cache)
