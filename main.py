# ✅ File: main.py

import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from app.logic.extractor import FilterExtractor
from app.logic.llm_client import FilterModel
from app.middleware.request_logging import RequestLoggingMiddleware
from app.routers.search_router import router as search_router
from app.services.employee_store import EmployeeStore
from app.services.search_service import SearchService
from app.utils.cache import AI_QUERY_TTL_SECONDS, LOCATIONS_TTL_SECONDS, connect_cache
from app.utils.logging_config import configure_logging
from app.utils.mongo import create_mongo_client, verify_mongo_connection

configure_logging()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Clients are created once here and handed to the search service explicitly;
    everything is closed on shutdown.
    """
    mongo_client, db, employees = create_mongo_client()
    cache = None
    model = None
    try:
        # ✅ storage down is fatal; cache down is not
        await verify_mongo_connection(db)
        cache = await connect_cache(os.getenv("REDIS_URL"))
        model = FilterModel.from_env()

        timeout = _env_int("LLM_TIMEOUT_SECONDS", 20)
        app.state.search_service = SearchService(
            store=EmployeeStore(employees, locations_ttl_seconds=_env_int("LOCATIONS_TTL_SECONDS", LOCATIONS_TTL_SECONDS)),
            cache=cache,
            extractor=FilterExtractor(
                model,
                cache,
                ttl_seconds=_env_int("AI_QUERY_TTL_SECONDS", AI_QUERY_TTL_SECONDS),
                cache_malformed=_env_flag("CACHE_MALFORMED_RESPONSES"),
            ),
            model_timeout=timeout if timeout > 0 else None,
        )
        yield
    finally:
        app.state.search_service = None
        if model is not None:
            await model.aclose()
        if cache is not None:
            await cache.aclose()
        mongo_client.close()


app = FastAPI(
    title="Employee Search API",
    description="Natural-language employee search over a MongoDB directory.",
    version="1.0.0",
    lifespan=lifespan,
)

# ✅ CORS for frontend
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

_extra = os.getenv("CORS_EXTRA_ORIGINS", "")
if _extra:
    for o in [x.strip() for x in _extra.split(",") if x.strip()]:
        if o not in origins:
            origins.append(o)

_allow_all = _env_flag("CORS_ALLOW_ALL")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if _allow_all else origins,
    allow_credentials=not _allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(search_router, prefix="/api")


@app.get("/healthz")
async def healthz():
    return JSONResponse({"status": "ok", "service": "employee-search"})


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 10000))
    uvicorn.run("main:app", host="0.0.0.0", port=port)
