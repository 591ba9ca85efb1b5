# app/logic/normalize.py
from __future__ import annotations

import re
from typing import Dict, Optional

# ---------------------------
# Role synonyms (variant -> canonical)
# ---------------------------
_ROLE_SYNONYMS: Dict[str, str] = {
    "software eng": "software engineer",
    "soft eng": "software engineer",
    "sw eng": "software engineer",
    "swe": "software engineer",
    "dev": "developer",
    "developer": "developer",
    "qa": "qa engineer",
    "quality assurance": "qa engineer",
    "data sci": "data scientist",
    "data scientist": "data scientist",
}

# ---------------------------
# Skill synonyms (lowercased variant -> canonical display form)
# ---------------------------
_SKILL_SYNONYMS: Dict[str, str] = {
    "python": "Python",
    "pthon": "Python",
    "java": "Java",
    "c++": "C++",
    "cpp": "C++",
    "javascript": "JavaScript",
    "js": "JavaScript",
    "node.js": "Node.js",
    "nodejs": "Node.js",
    "node": "Node.js",
}

# Words the model (or a user) tends to emit as "skills" that are really role noise.
SKILL_DENYLIST = frozenset({"all", "software", "engineer", "developer"})

_REGEX_META_RE = re.compile(r"[.*+?^${}()|\[\]\\]")


def _clean(s: Optional[str]) -> str:
    if not isinstance(s, str):
        return ""
    return s.strip()


def normalize_role(role: Optional[str]) -> str:
    """
    Map a role phrase onto its canonical name.
      "SWE"          -> "software engineer"
      "QA"           -> "qa engineer"
      "Product Lead" -> "product lead"
    """
    r = _clean(role).lower()
    return _ROLE_SYNONYMS.get(r, r)


def normalize_skill(skill: Optional[str]) -> Optional[str]:
    """
    Canonical skill name, or None when the token is not a real skill.
    Unknown skills are returned as given (trimmed, casing preserved).
    """
    s = _clean(skill)
    low = s.lower()
    if not low or low in SKILL_DENYLIST:
        return None
    return _SKILL_SYNONYMS.get(low, s)


def escape_regex(text: str) -> str:
    """Escape regex metacharacters, leaving the text otherwise untouched."""
    return _REGEX_META_RE.sub(lambda m: "\\" + m.group(0), text)


def escape_for_pattern(text: Optional[str]) -> str:
    """Trim free text and escape it so it can sit inside a pattern."""
    return escape_regex(_clean(text))


def contains_pattern(text: Optional[str]) -> str:
    """Unanchored 'contains' pattern for free text."""
    return f".*{escape_for_pattern(text)}.*"
