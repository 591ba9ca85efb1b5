# app/logic/filters.py
"""
Typed filter records flowing through the query pipeline.

Model output is untrusted. ``ModelFilter`` only keeps the four known keys and
coerces each one independently; a malformed value drops that key and nothing
else, so a half-valid response still yields a usable filter.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALLOWED_FILTER_KEYS = ("role", "location", "experience", "skills")
EXPERIENCE_OPERATORS = ("$gt", "$gte", "$lt", "$lte", "$eq", "$ne")


def _as_int(v: Any) -> Optional[int]:
    # bool is an int subclass; "true years" is not an experience value
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str) and v.strip().isdigit():
        return int(v.strip())
    return None


def _as_text(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None


class SkillsFilter(BaseModel):
    """``{"any": [...]}`` or ``{"all": [...]}``; ``all`` wins when both are given."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    any_of: Optional[List[str]] = Field(default=None, alias="any")
    all_of: Optional[List[str]] = Field(default=None, alias="all")

    @field_validator("any_of", "all_of", mode="before")
    @classmethod
    def _keep_strings(cls, v: Any) -> Optional[List[str]]:
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, list):
            return None
        items = [x.strip() for x in v if isinstance(x, str) and x.strip()]
        return items or None

    def is_empty(self) -> bool:
        return not self.any_of and not self.all_of


class ExperienceRange(BaseModel):
    """Comparator map such as ``{"$gte": 5}`` or ``{"$gte": 3, "$lte": 7}``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    gt: Optional[int] = Field(default=None, alias="$gt")
    gte: Optional[int] = Field(default=None, alias="$gte")
    lt: Optional[int] = Field(default=None, alias="$lt")
    lte: Optional[int] = Field(default=None, alias="$lte")
    eq: Optional[int] = Field(default=None, alias="$eq")
    ne: Optional[int] = Field(default=None, alias="$ne")

    def to_mongo(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True, exclude_none=True)


ExperienceValue = Union[int, ExperienceRange]


def _coerce_experience(v: Any) -> Optional[ExperienceValue]:
    exact = _as_int(v)
    if exact is not None:
        return exact
    if isinstance(v, dict):
        ops = {}
        for op in EXPERIENCE_OPERATORS:
            if op in v:
                n = _as_int(v[op])
                if n is not None:
                    ops[op] = n
        if ops:
            return ExperienceRange.model_validate(ops)
    return None


def _coerce_skills(v: Any) -> Optional[SkillsFilter]:
    if isinstance(v, SkillsFilter):
        return None if v.is_empty() else v
    if isinstance(v, (list, str)):
        v = {"any": v}
    if not isinstance(v, dict):
        return None
    skills = SkillsFilter.model_validate(v)
    return None if skills.is_empty() else skills


class ModelFilter(BaseModel):
    """Filter extracted from the language model's JSON block."""

    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[ExperienceValue] = None
    skills: Optional[SkillsFilter] = None

    @field_validator("role", "location", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _as_text(v)

    @field_validator("experience", mode="before")
    @classmethod
    def _experience(cls, v: Any) -> Optional[ExperienceValue]:
        if isinstance(v, ExperienceRange):
            return v
        return _coerce_experience(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _skills(cls, v: Any) -> Optional[SkillsFilter]:
        return _coerce_skills(v)

    @classmethod
    def from_raw(cls, raw: Any) -> "ModelFilter":
        """Build from decoded JSON; anything that is not an object is an empty filter."""
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate({k: raw[k] for k in ALLOWED_FILTER_KEYS if k in raw})

    def is_empty(self) -> bool:
        return (
            self.role is None
            and self.location is None
            and self.experience is None
            and self.skills is None
        )


class PreprocessedFilter(BaseModel):
    """Best-effort filter built locally, without calling the model."""

    experience: Optional[int] = None
    skills: Optional[SkillsFilter] = None
    role: Optional[str] = None

    def is_empty(self) -> bool:
        return self.experience is None and self.skills is None and self.role is None

    def to_model_filter(self) -> ModelFilter:
        return ModelFilter(role=self.role, experience=self.experience, skills=self.skills)
