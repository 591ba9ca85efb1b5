# app/services/employee_store.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from app.utils.cache import DISTINCT_LOCATIONS_KEY, LOCATIONS_TTL_SECONDS, BestEffortCache

logger = logging.getLogger("employee_search.store")

# Mongo's _id is internal; callers get the record fields only
EMPLOYEE_PROJECTION = {"_id": 0}


class EmployeeStore:
    """Read-only access to the employees collection."""

    def __init__(self, collection: Any, locations_ttl_seconds: int = LOCATIONS_TTL_SECONDS):
        self.collection = collection
        self.locations_ttl_seconds = locations_ttl_seconds

    async def find_page(self, query: Dict[str, Any], skip: int, limit: int) -> List[Dict[str, Any]]:
        cursor = self.collection.find(query, EMPLOYEE_PROJECTION).skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    async def count(self, query: Dict[str, Any]) -> int:
        return await self.collection.count_documents(query)

    async def distinct_locations(self, cache: BestEffortCache) -> List[str]:
        """
        Location universe for fuzzy matching. Cached for a day; a stale list only
        means a brand-new location falls through to the "contains" pattern.
        """
        cached = await cache.get_json(DISTINCT_LOCATIONS_KEY)
        if isinstance(cached, list):
            return [x for x in cached if isinstance(x, str)]

        values = await self.collection.distinct("location")
        locations = sorted({v for v in values if isinstance(v, str) and v.strip()})
        logger.info("distinct_locations_refreshed", extra={"count": len(locations)})
        await cache.set_json(DISTINCT_LOCATIONS_KEY, locations, self.locations_ttl_seconds)
        return locations
