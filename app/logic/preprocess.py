# app/logic/preprocess.py
from __future__ import annotations

import re
from typing import Optional

from app.logic.filters import PreprocessedFilter, SkillsFilter
from app.logic.normalize import normalize_role, normalize_skill

_EXPERIENCE_RE = re.compile(r"^(\d+)\s*(?:years|yrs|year)?$")
_SINGLE_TOKEN_RE = re.compile(r"^[a-zA-Z+.#-]+$")
# words and spaces only; "xyzabc123$$$" is not role-like
_ROLE_LIKE_RE = re.compile(r"^[a-zA-Z\s]+$")


def is_show_all(query: Optional[str]) -> bool:
    """True for the explicit wildcard query ("all", any casing/whitespace)."""
    return isinstance(query, str) and query.strip().lower() == "all"


def preprocess_query(query: Optional[str]) -> PreprocessedFilter:
    """
    Classify a query locally (first rule wins):
      "all"            -> {}
      "10 years"       -> {experience: 10}
      "java" / "c++"   -> {skills: {any: [<canonical skill>]}}
      "software eng"   -> {role: <canonical role>}
      anything else    -> {}
    """
    q = query.strip().lower() if isinstance(query, str) else ""
    if not q or q == "all":
        return PreprocessedFilter()

    m = _EXPERIENCE_RE.match(q)
    if m:
        return PreprocessedFilter(experience=int(m.group(1)))

    if _SINGLE_TOKEN_RE.match(q):
        skill = normalize_skill(q)
        if skill:
            return PreprocessedFilter(skills=SkillsFilter(any=[skill]))
        return PreprocessedFilter()

    if _ROLE_LIKE_RE.match(q):
        return PreprocessedFilter(role=normalize_role(q))

    return PreprocessedFilter()
