"""
Name matching between budgeted materials and recorded purchases.

Purchase records are typed by hand, so "MDF 18mm" in a quotation may show up
as "mdf 18 mm" on an invoice.  Matching policies share one method,
``match(candidate, pool)``, and can be swapped without touching the cost math.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

MATCH_EXACT = "exact"
MATCH_SUBSTRING = "substring"
MATCH_TOKENS = "tokens"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Match:
    index: int
    name: str
    strategy: str


class NameMatcher(Protocol):
    def match(self, candidate: str, pool: Sequence[str]) -> Optional[Match]:
        ...


def normalize_name(name: str) -> str:
    """Lower-case ``name`` and collapse runs of whitespace."""

    return _WHITESPACE.sub(" ", (name or "").strip().lower())


def _compact(name: str) -> str:
    return name.replace(" ", "")


def _tokens(name: str, min_length: int) -> List[str]:
    return [token for token in name.split(" ") if len(token) >= min_length]


class ExactNameMatcher:
    """Case-insensitive equality only."""

    def match(self, candidate: str, pool: Sequence[str]) -> Optional[Match]:
        target = normalize_name(candidate)
        for idx, name in enumerate(pool):
            if normalize_name(name) == target:
                return Match(idx, name, MATCH_EXACT)
        return None


class HeuristicNameMatcher:
    """Exact, then substring, then token-overlap matching; first hit wins.

    Substring containment is checked in either direction on the normalized
    names and on their whitespace-free forms; both sides need at least
    ``min_length`` characters.  Token overlap counts tokens of at least
    ``min_length`` characters that contain one another and needs
    ``min(min_shared_tokens, len(candidate tokens))`` hits.
    """

    def __init__(self, min_length: int = 3, min_shared_tokens: int = 2) -> None:
        self.min_length = min_length
        self.min_shared_tokens = min_shared_tokens

    def match(self, candidate: str, pool: Sequence[str]) -> Optional[Match]:
        target = normalize_name(candidate)
        if not target:
            return None
        normalized = [normalize_name(name) for name in pool]

        for idx, name in enumerate(normalized):
            if name == target:
                return Match(idx, pool[idx], MATCH_EXACT)

        if len(target) >= self.min_length:
            compact_target = _compact(target)
            for idx, name in enumerate(normalized):
                if len(name) < self.min_length:
                    continue
                if target in name or name in target:
                    return Match(idx, pool[idx], MATCH_SUBSTRING)
                compact_name = _compact(name)
                if compact_target in compact_name or compact_name in compact_target:
                    return Match(idx, pool[idx], MATCH_SUBSTRING)

        target_tokens = _tokens(target, self.min_length)
        if not target_tokens:
            return None
        needed = min(self.min_shared_tokens, len(target_tokens))
        for idx, name in enumerate(normalized):
            name_tokens = _tokens(name, self.min_length)
            shared = [
                token
                for token in target_tokens
                if any(token in other or other in token for other in name_tokens)
            ]
            if len(shared) >= needed:
                return Match(idx, pool[idx], MATCH_TOKENS)
        return None


DEFAULT_MATCHER = HeuristicNameMatcher()
