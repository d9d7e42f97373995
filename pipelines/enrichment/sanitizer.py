"""
Hierarchy Sanitization.

Responsibilities:
- Drop extracted hierarchy entries that are not plausibly a real person:
  blank names/titles, known placeholder names, names containing pronouns,
  conjunctions or role words.
- Trim names and titles.

Non-Responsibilities:
- No de-duplication (done when merging into a profile).
- No I/O, no logging.

Invariant:
Pure function: the output depends only on the input result and the config,
and surviving items keep their source order.
"""
import re
from typing import Set

from ezlead.config import SanitizerConfig
from ezlead.models import HierarchyItem, HierarchyResult

_NAME_DELIMITERS = re.compile(r"[\s&]+")
_TOKEN_PUNCTUATION = ".,;:()[]\"'"


def _lowered(words) -> Set[str]:
    return {w.strip().lower() for w in words if w and w.strip()}


def _name_tokens(name: str) -> Set[str]:
    tokens = set()
    for raw in _NAME_DELIMITERS.split(name):
        token = raw.strip(_TOKEN_PUNCTUATION).lower()
        if token:
            tokens.add(token)
    # "&" is also a delimiter; keep it visible to the conjunction check
    if "&" in name:
        tokens.add("&")
    return tokens


def sanitize_hierarchy(result: HierarchyResult, config: SanitizerConfig) -> HierarchyResult:
    """Return a new result holding only the items that look like real people."""
    placeholders = {p.strip().casefold() for p in config.placeholder_names if p and p.strip()}
    rejected_tokens = (
        _lowered(config.pronouns)
        | _lowered(config.conjunctions)
        | _lowered(config.forbidden_name_words)
    )

    kept = []
    for item in result.items:
        name = (item.name or "").strip()
        title = (item.title or "").strip()
        if not name or not title:
            continue
        if name.casefold() in placeholders:
            continue
        if _name_tokens(name) & rejected_tokens:
            continue
        kept.append(HierarchyItem(name=name, title=title))
    return HierarchyResult(items=kept)
