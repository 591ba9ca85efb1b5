# tests/conftest.py
# Pytest fixtures and in-memory fakes for Mongo, Redis and the language model.
# Run: pytest tests/ -v

import re
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from main import app  # noqa: E402
from app.logic.extractor import FilterExtractor
from app.services.employee_store import EmployeeStore
from app.services.search_service import SearchService
from app.utils.cache import BestEffortCache


EMPLOYEES: List[Dict[str, Any]] = [
    {"id": 1, "name": "Asha Rao", "role": "Senior Software Engineer", "location": "Mumbai", "experience": 6, "skills": ["Python", "Django"]},
    {"id": 2, "name": "Vikram Shah", "role": "Software Engineer", "location": "Mumbai", "experience": 3, "skills": ["Java", "Spring"]},
    {"id": 3, "name": "Neha Iyer", "role": "QA Engineer", "location": "Bangalore", "experience": 10, "skills": ["Selenium", "Java"]},
    {"id": 4, "name": "Rohan Das", "role": "Data Scientist", "location": "Pune", "experience": 5, "skills": ["Python", "Pandas"]},
    {"id": 5, "name": "Meera Nair", "role": "Frontend Developer", "location": "Punekar Colony", "experience": 2, "skills": ["JavaScript (ES6)", "React"]},
    {"id": 6, "name": "Karan Mehta", "role": "Backend Developer", "location": "Delhi", "experience": 10, "skills": ["Node.js", "MongoDB"]},
]


# ---------------------------
# Mongo fake
# ---------------------------

def _regex_of(cond: Dict[str, Any]) -> "re.Pattern":
    flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
    return re.compile(cond["$regex"], flags)


def _match_value(value: Any, cond: Any) -> bool:
    if isinstance(cond, re.Pattern):
        if isinstance(value, list):
            return any(isinstance(v, str) and cond.search(v) for v in value)
        return isinstance(value, str) and bool(cond.search(value))
    if not isinstance(cond, dict):
        if isinstance(value, list):
            return cond in value
        return value == cond
    if "$regex" in cond:
        return _match_value(value, _regex_of(cond))
    for op, arg in cond.items():
        if op == "$in":
            if not any(_match_value(value, a) for a in arg):
                return False
        elif op == "$all":
            if not all(_match_value(value, a) for a in arg):
                return False
        elif op == "$gte" and not value >= arg:
            return False
        elif op == "$gt" and not value > arg:
            return False
        elif op == "$lte" and not value <= arg:
            return False
        elif op == "$lt" and not value < arg:
            return False
        elif op == "$eq" and not value == arg:
            return False
        elif op == "$ne" and not value != arg:
            return False
    return True


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(_match_value(doc.get(k), cond) for k, cond in query.items())


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def skip(self, n: int) -> "FakeCursor":
        self._skip = n
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._limit = n
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        out = self._docs[self._skip:]
        if self._limit:
            out = out[: self._limit]
        return [dict(d) for d in out]


class FakeCollection:
    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None, fail: bool = False):
        self.docs = list(EMPLOYEES if docs is None else docs)
        self.fail = fail
        self.find_queries: List[Dict[str, Any]] = []
        self.distinct_calls = 0

    def _check(self):
        if self.fail:
            from pymongo.errors import ServerSelectionTimeoutError
            raise ServerSelectionTimeoutError("mongo unreachable")

    def find(self, query, projection=None):
        self._check()
        self.find_queries.append(query)
        return FakeCursor([d for d in self.docs if matches(d, query)])

    async def count_documents(self, query):
        self._check()
        return sum(1 for d in self.docs if matches(d, query))

    async def distinct(self, field_name):
        self._check()
        self.distinct_calls += 1
        seen = []
        for d in self.docs:
            v = d.get(field_name)
            if v is not None and v not in seen:
                seen.append(v)
        return seen


# ---------------------------
# Redis fake
# ---------------------------

class FakeRedis:
    def __init__(self, fail: bool = False):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = fail
        self.closed = False

    async def ping(self):
        if self.fail:
            raise RedisConnectionError("redis down")
        return True

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def aclose(self):
        self.closed = True


class GarbledRedis(FakeRedis):
    """Connected, but fails with non-Redis errors (bad bytes, bad values)."""

    async def get(self, key):
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    async def set(self, key, value, ex=None):
        raise TypeError("unsupported value")

    async def aclose(self):
        raise RuntimeError("already closed")


# ---------------------------
# Language model fake
# ---------------------------

def block(payload: str) -> str:
    return f"JSON_OUTPUT_START\n{payload}\nJSON_OUTPUT_END"


class FakeModel:
    def __init__(self, response: str = block("{}"), error: Optional[Exception] = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, str]] = []
        self.completed = 0

    async def complete(self, system: str, user: str) -> str:
        self.calls.append({"system": system, "user": user})
        if self.delay:
            import asyncio
            await asyncio.sleep(self.delay)
        self.completed += 1
        if self.error is not None:
            raise self.error
        return self.response


def make_service(
    model: Optional[FakeModel] = None,
    redis_client: Any = None,
    collection: Optional[FakeCollection] = None,
    model_timeout: Optional[float] = None,
) -> SearchService:
    cache = BestEffortCache(redis_client)
    return SearchService(
        store=EmployeeStore(collection if collection is not None else FakeCollection()),
        cache=cache,
        extractor=FilterExtractor(model or FakeModel(), cache),
        model_timeout=model_timeout,
    )


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def collection():
    return FakeCollection()
