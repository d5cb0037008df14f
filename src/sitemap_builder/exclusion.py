"""URL exclusion patterns: glob strings and regular expressions."""

import logging
import re
from functools import lru_cache
from typing import Iterable, List, Pattern, Sequence

from .types import ExcludePattern, Route

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> Pattern[str]:
    """
    Compile a glob into a regex anchored at both ends.

    ``*`` and ``**`` match any run of characters (slashes included), ``?``
    matches exactly one character and everything else is literal.
    """
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            while i + 1 < len(pattern) and pattern[i + 1] == "*":
                i += 1
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


def matches_pattern(url: str, pattern: ExcludePattern) -> bool:
    if isinstance(pattern, str):
        return glob_to_regex(pattern).match(url) is not None
    if isinstance(pattern, re.Pattern):
        return pattern.search(url) is not None
    raise TypeError(f"Unsupported exclude pattern type: {type(pattern).__name__}")


def matches_exclude_pattern(url: str, patterns: Iterable[ExcludePattern]) -> bool:
    """Check if a URL matches any exclusion pattern."""
    if not isinstance(url, str):
        # left for the validator to report
        return False
    return any(matches_pattern(url, pattern) for pattern in patterns)


def filter_excluded_routes(routes: Sequence[Route], patterns: Sequence[ExcludePattern]) -> List[Route]:
    """Drop routes whose URL matches one of the patterns."""
    if not patterns:
        return list(routes)

    kept = [route for route in routes if not matches_exclude_pattern(route.url, patterns)]
    if len(kept) < len(routes):
        logger.debug(f"Excluded {len(routes) - len(kept)} of {len(routes)} routes")
    return kept
