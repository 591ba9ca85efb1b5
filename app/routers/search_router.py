# app/routers/search_router.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from app.logic.llm_client import FilterModelError
from app.schemas.search import SearchRequest, SearchResponse
from app.services.search_service import SearchService

logger = logging.getLogger("employee_search.api")

router = APIRouter()


def get_search_service(request: Request) -> SearchService:
    """Built once in the app lifespan; overridden in tests."""
    service = getattr(request.app.state, "search_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Search service not ready")
    return service


@router.post("/search", response_model=SearchResponse)
async def search_employees(
    body: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    """
    Free-text employee search.
    Returns the page of matches, total count across pages, and whether the
    low-confidence role fallback was used.
    """
    if not isinstance(body.query, str) or not body.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        result = await service.search(body.query, page=body.page, page_size=body.page_size)
    except FilterModelError:
        logger.exception("filter_extraction_failed", extra={"query": body.query[:200]})
        raise HTTPException(status_code=502, detail="Filter extraction failed")
    except Exception:
        logger.exception("search_failed", extra={"query": body.query[:200]})
        raise HTTPException(status_code=500, detail="Internal Server Error")

    return SearchResponse(
        results=result.results,
        total_count=result.total_count,
        used_fallback=result.used_fallback,
        page=result.page,
        page_size=result.page_size,
    )
