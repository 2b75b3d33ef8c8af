"""
Rule matching - user rules are the highest-precedence normalization tier

A rule matches when its pattern is a case-insensitive substring of the raw
product name. The first matching rule in list order wins. Blank patterns
never match.
"""
from typing import Dict, Iterable, Optional, Tuple

from packages.common.schemas.ticket import DEFAULT_CATEGORY, TOTAL_SENTINEL, Rule


def match_rule(name: str, rules: Iterable[Rule]) -> Optional[Rule]:
    """First rule whose pattern occurs in ``name`` (case-insensitive)"""
    lowered = name.lower()
    for rule in rules:
        # Blank or whitespace-only patterns never match
        pattern = (rule.pattern or "").strip().lower()
        if pattern and pattern in lowered:
            return rule
    return None


def apply_rule_or_mapping(
    name: str,
    category: str,
    rules: Iterable[Rule],
    mappings: Dict[str, str],
) -> Tuple[str, str]:
    """
    Resolve the display name and category of a ledger line at use time.

    Order: matching rule (name + category) → cached mapping (name only) →
    raw values. The Total Row is returned untouched.

    Returns:
        (name, category)
    """
    raw_name = (name or "").strip()
    raw_category = (category or "").strip() or DEFAULT_CATEGORY
    if not raw_name or raw_name == TOTAL_SENTINEL:
        return raw_name, (category or "").strip()

    rule = match_rule(raw_name, rules)
    if rule is not None:
        return rule.normalized, rule.category

    cached = mappings.get(raw_name)
    if cached:
        return cached, raw_category

    return raw_name, raw_category
