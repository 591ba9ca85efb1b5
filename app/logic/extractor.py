# app/logic/extractor.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Protocol

from app.logic.filters import ModelFilter
from app.utils.cache import AI_QUERY_TTL_SECONDS, BestEffortCache, model_response_key

logger = logging.getLogger("employee_search.extractor")

JSON_START = "JSON_OUTPUT_START"
JSON_END = "JSON_OUTPUT_END"

_BLOCK_RE = re.compile(rf"{JSON_START}([\s\S]*?){JSON_END}")

FILTER_SYSTEM_PROMPT = f"""You're a MongoDB filter generator.
Only return valid JSON enclosed between {JSON_START} and {JSON_END}. Do NOT include any explanation.

Allowed keys:
- role: string
- location: string
- experience: object (e.g. {{"$lte": 5}}) or number (e.g. 10 for exact match)
- skills: object with "any" or "all" arrays

Handle special cases:
- If the query is "all", return {{}} to match all employees.
- If the query is a single word like "java", assume it's a skill and return {{"skills": {{"any": ["java"]}}}}. Do NOT treat "software", "engineer", or "all" as skills.
- If the query is a number with "years" (e.g., "10 years"), return {{"experience": 10}} for an exact match.
- If the query looks like a role (e.g., "software eng", "developer"), return {{"role": "software engineer"}} or {{"role": "developer"}}. Normalize "software eng", "soft eng", "sw eng", or "swe" to "software engineer".

Example outputs:
For query "all":
{JSON_START}
{{}}
{JSON_END}

For query "java":
{JSON_START}
{{"skills": {{"any": ["java"]}}}}
{JSON_END}

For query "10 years":
{JSON_START}
{{"experience": 10}}
{JSON_END}

For query "software eng":
{JSON_START}
{{"role": "software engineer"}}
{JSON_END}

For query "developer":
{JSON_START}
{{"role": "developer"}}
{JSON_END}

For query "software engineer in mumbai with 5 years experience":
{JSON_START}
{{
  "role": "software engineer",
  "location": "mumbai",
  "experience": {{"$gte": 5}}
}}
{JSON_END}"""


def build_user_prompt(query: str) -> str:
    return f'Extract filters from: "{query}"'


class CompletionModel(Protocol):
    async def complete(self, system: str, user: str) -> str: ...


_MISSING = object()


def _decode_block(text: Optional[str]) -> Any:
    """
    Decoded JSON between the markers, or _MISSING / None:
      _MISSING -> no marker pair
      None     -> markers present but the content is not valid JSON
    """
    m = _BLOCK_RE.search(text or "")
    if not m:
        return _MISSING
    body = m.group(1).strip()
    # models sometimes wrap the block body in ```json fences
    if body.startswith("```"):
        body = re.sub(r"^```(?:json)?", "", body, flags=re.IGNORECASE).strip()
        body = re.sub(r"```$", "", body).strip()
    try:
        return json.loads(body)
    except ValueError:
        return None


def is_well_formed(text: Optional[str]) -> bool:
    """Marker pair present and enclosing a JSON object."""
    return isinstance(_decode_block(text), dict)


def parse_json_block(text: Optional[str]) -> ModelFilter:
    """
    Pull the delimited JSON block out of free-form model text.
    Never raises: a missing block or bad JSON is an empty filter.
    """
    decoded = _decode_block(text)
    if decoded is _MISSING:
        logger.warning("json_block_missing", extra={"response_preview": (text or "")[:200]})
        return ModelFilter()
    if not isinstance(decoded, dict):
        logger.warning("json_block_invalid", extra={"response_preview": (text or "")[:200]})
        return ModelFilter()

    parsed = ModelFilter.from_raw(decoded)
    dropped = sorted(set(decoded) - set(parsed.model_dump(exclude_none=True)))
    if dropped:
        logger.info("json_block_keys_dropped", extra={"keys": dropped})
    return parsed


class FilterExtractor:
    """
    Cache-first model call. Returns the raw model text; parsing is separate.

    Only well-formed responses are cached unless cache_malformed=True, so one
    bad generation does not pin degraded results for the whole TTL.
    """

    def __init__(
        self,
        model: CompletionModel,
        cache: BestEffortCache,
        ttl_seconds: int = AI_QUERY_TTL_SECONDS,
        cache_malformed: bool = False,
    ):
        self.model = model
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.cache_malformed = cache_malformed

    async def extract(self, query: str) -> str:
        key = model_response_key(query)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info("ai_filters_cache_hit", extra={"query": query[:200]})
            return cached

        # FilterModelError propagates: a failed model call fails the request
        response = await self.model.complete(FILTER_SYSTEM_PROMPT, build_user_prompt(query))

        if self.cache_malformed or is_well_formed(response):
            await self.cache.set(key, response, self.ttl_seconds)
        else:
            logger.warning("ai_filters_not_cached", extra={"query": query[:200]})
        return response
