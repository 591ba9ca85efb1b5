# app/logic/location_resolver.py
from __future__ import annotations

import difflib
import logging
from typing import Dict, Iterable, Optional, Tuple

from app.logic.normalize import contains_pattern, escape_regex

logger = logging.getLogger("employee_search.location")

# Minimum SequenceMatcher ratio for a fuzzy hit ("mumbi" -> "Mumbai" is ~0.91)
LOCATION_MATCH_FLOOR = 0.6


def anchored_pattern(value: str) -> Dict[str, str]:
    # built from the stored value verbatim, padding included, so it matches that value
    return {"$regex": f"^{escape_regex(value)}$", "$options": "i"}


def best_fuzzy_match(candidate: str, known: Iterable[str]) -> Tuple[Optional[str], float]:
    """Highest-ratio known value for candidate (case-insensitive)."""
    needle = candidate.strip().lower()
    best: Optional[str] = None
    best_score = 0.0
    for loc in known:
        if not isinstance(loc, str) or not loc.strip():
            continue
        score = difflib.SequenceMatcher(None, needle, loc.strip().lower()).ratio()
        if score > best_score:
            best, best_score = loc, score
    return best, best_score


def resolve_location(candidate: str, known_locations: Iterable[str]) -> Dict[str, str]:
    """
    Pattern clause for a free-text location.
      1) exact (case-insensitive) known value -> anchored match on it
      2) best fuzzy match >= LOCATION_MATCH_FLOOR -> anchored match on it
      3) otherwise an unanchored "contains" match on the trimmed input
    """
    known = [loc for loc in known_locations if isinstance(loc, str)]
    wanted = (candidate or "").strip()
    low = wanted.lower()

    for loc in known:
        if loc.strip().lower() == low:
            return anchored_pattern(loc)

    best, score = best_fuzzy_match(wanted, known)
    if best is not None and score >= LOCATION_MATCH_FLOOR:
        logger.info(
            "location_fuzzy_matched",
            extra={"candidate": wanted, "matched": best, "score": round(score, 3)},
        )
        return anchored_pattern(best)

    logger.info("location_unmatched", extra={"candidate": wanted, "best_score": round(score, 3)})
    return {"$regex": contains_pattern(wanted), "$options": "i"}
