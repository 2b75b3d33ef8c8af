"""
Normalization Module - product name reconciliation

Three tiers, highest precedence first:
1. User rules (substring match, applied at use time)
2. Mapping cache (learned pairs, free)
3. AI batch inference (at most 30 names per call, learned pairs cached)
"""
from packages.domain.normalization.resolver import NameResolver
from packages.domain.normalization.rules import apply_rule_or_mapping, match_rule

__all__ = [
    "NameResolver",
    "apply_rule_or_mapping",
    "match_rule",
]
