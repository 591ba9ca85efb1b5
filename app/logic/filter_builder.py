# app/logic/filter_builder.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from app.logic.filters import ModelFilter, PreprocessedFilter, SkillsFilter
from app.logic.location_resolver import resolve_location
from app.logic.normalize import contains_pattern, normalize_skill

logger = logging.getLogger("employee_search.filters")


def merge_filters(model_filter: ModelFilter, preprocessed: PreprocessedFilter) -> ModelFilter:
    """
    Precedence: anything the model produced (even one key) beats the local
    preprocessor; the preprocessed filter is used only when the model's is empty.
    """
    if model_filter.is_empty() and not preprocessed.is_empty():
        logger.info("using_preprocessed_filters", extra={"filters": preprocessed.model_dump(exclude_none=True)})
        return preprocessed.to_model_filter()
    return model_filter


def role_clause(role: str) -> Dict[str, str]:
    return {"$regex": contains_pattern(role), "$options": "i"}


def _skill_patterns(skills: Iterable[str]) -> List["re.Pattern[str]"]:
    out = []
    for s in skills:
        canon = normalize_skill(s)
        if canon is None:
            continue
        out.append(re.compile(contains_pattern(canon), re.IGNORECASE))
    return out


def skills_clause(skills: SkillsFilter) -> Optional[Dict[str, Any]]:
    """$all when an "all" list is given, else $in over "any"; None if nothing survives."""
    if skills.all_of:
        patterns = _skill_patterns(skills.all_of)
        return {"$all": patterns} if patterns else None
    if skills.any_of:
        patterns = _skill_patterns(skills.any_of)
        return {"$in": patterns} if patterns else None
    return None


def build_structured_filter(
    model_filter: ModelFilter,
    preprocessed: PreprocessedFilter,
    known_locations: Iterable[str],
) -> Dict[str, Any]:
    """
    Mongo filter for the employees collection. An empty dict means the query
    gave nothing usable (the caller decides what that means).
    """
    working = merge_filters(model_filter, preprocessed)
    query: Dict[str, Any] = {}

    if working.location:
        query["location"] = resolve_location(working.location, known_locations)

    if working.role:
        query["role"] = role_clause(working.role)

    if working.experience is not None:
        exp = working.experience
        query["experience"] = exp if isinstance(exp, int) else exp.to_mongo()

    if working.skills is not None:
        clause = skills_clause(working.skills)
        if clause:
            query["skills"] = clause

    logger.debug("structured_filter_built", extra={"keys": sorted(query)})
    return query
