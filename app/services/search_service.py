# app/services/search_service.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.logic.extractor import FilterExtractor, parse_json_block
from app.logic.filter_builder import build_structured_filter, role_clause
from app.logic.normalize import normalize_role
from app.logic.preprocess import is_show_all, preprocess_query
from app.services.employee_store import EmployeeStore
from app.utils.cache import BestEffortCache

logger = logging.getLogger("employee_search.search")

DEFAULT_PAGE_SIZE = 20

PATH_ALL = "all"
PATH_ROLE_FALLBACK = "role_fallback"
PATH_STRUCTURED = "structured"


async def _gather_or_cancel(*aws):
    """asyncio.gather, but a failure in one awaitable cancels the others."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


@dataclass
class SearchResult:
    results: List[Dict[str, Any]]
    total_count: int
    used_fallback: bool
    page: int
    page_size: int
    path: str = PATH_STRUCTURED
    applied_filter: Dict[str, Any] = field(default_factory=dict)


class SearchService:
    """
    Query -> Mongo filter -> page of employees.

    Three exits:
      all            the literal "all" query; unfiltered page, reported as
                     used_fallback=True since nothing was extracted
      role_fallback  nothing usable was extracted; substring search on role,
                     flagged with used_fallback=True
      structured     the built filter as-is
    """

    def __init__(
        self,
        store: EmployeeStore,
        cache: BestEffortCache,
        extractor: FilterExtractor,
        model_timeout: Optional[float] = None,
    ):
        self.store = store
        self.cache = cache
        self.extractor = extractor
        self.model_timeout = model_timeout

    async def _model_response(self, query: str) -> str:
        if not self.model_timeout:
            return await self.extractor.extract(query)
        try:
            return await asyncio.wait_for(self.extractor.extract(query), timeout=self.model_timeout)
        except asyncio.TimeoutError:
            # treated as "model extracted nothing"; preprocessed filter or role fallback takes over
            logger.warning("llm_timeout", extra={"query": query[:200], "timeout_s": self.model_timeout})
            return ""

    async def build_filter(self, query: str) -> Dict[str, Any]:
        """Structured filter for a non-wildcard query; may be empty."""
        preprocessed = preprocess_query(query)
        locations, response = await _gather_or_cancel(
            self.store.distinct_locations(self.cache),
            self._model_response(query),
        )
        model_filter = parse_json_block(response)
        return build_structured_filter(model_filter, preprocessed, locations)

    async def _run(self, mongo_query: Dict[str, Any], skip: int, limit: int):
        return await _gather_or_cancel(
            self.store.find_page(mongo_query, skip, limit),
            self.store.count(mongo_query),
        )

    async def search(self, query: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> SearchResult:
        start = time.perf_counter()
        skip = (page - 1) * page_size

        if is_show_all(query):
            path, used_fallback, mongo_query = PATH_ALL, True, {}
        else:
            mongo_query = await self.build_filter(query)
            if mongo_query:
                path, used_fallback = PATH_STRUCTURED, False
            else:
                mongo_query = {"role": role_clause(normalize_role(query))}
                path, used_fallback = PATH_ROLE_FALLBACK, True

        results, total = await self._run(mongo_query, skip, page_size)

        logger.info(
            "search_completed",
            extra={
                "path": path,
                "total": total,
                "page": page,
                "page_size": page_size,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return SearchResult(
            results=results,
            total_count=total,
            used_fallback=used_fallback,
            page=page,
            page_size=page_size,
            path=path,
            applied_filter=mongo_query,
        )
