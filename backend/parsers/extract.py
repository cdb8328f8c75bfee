"""Ordered extraction strategies for fields on vendor pages.

Each field is described as a list of named strategies tried in order; the first
one that matches wins. Callers only see ``first_match``, so a strategy can be
swapped for a different matcher without touching them.
"""

import re
from typing import NamedTuple

import structlog

logger = structlog.get_logger()


class Strategy(NamedTuple):
    name: str
    pattern: re.Pattern[str]


def strategy(name: str, pattern: str, flags: int = re.IGNORECASE) -> Strategy:
    return Strategy(name=name, pattern=re.compile(pattern, flags))


def first_match(text: str, strategies: list[Strategy]) -> re.Match[str] | None:
    for candidate in strategies:
        match = candidate.pattern.search(text)
        if match:
            logger.debug("Extraction strategy matched", strategy=candidate.name)
            return match
    return None


def parse_number(raw: str | None) -> float:
    if not raw:
        return 0.0
    try:
        return float(raw)
    except ValueError:
        return 0.0
