# tests/test_search_route.py
# POST /api/search: input validation, response shape, error mapping.

import pytest
from fastapi.testclient import TestClient

from main import app  # noqa: E402
from app.logic.llm_client import FilterModelError
from app.routers.search_router import get_search_service
from conftest import FakeCollection, FakeModel, FakeRedis, block, make_service


def _override(service):
    app.dependency_overrides[get_search_service] = lambda: service


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def test_search_returns_page_shape(client: TestClient):
    _override(make_service(model=FakeModel(block("{}")), redis_client=FakeRedis()))
    r = client.post("/api/search", json={"query": "10 years", "page": 1, "pageSize": 9})
    assert r.status_code == 200
    body = r.json()
    assert set(body) == {"results", "totalCount", "usedFallback", "page", "pageSize"}
    assert body["totalCount"] == 2
    assert body["usedFallback"] is False
    assert (body["page"], body["pageSize"]) == (1, 9)
    assert {e["name"] for e in body["results"]} == {"Neha Iyer", "Karan Mehta"}
    assert all("_id" not in e for e in body["results"])


def test_defaults_page_and_page_size(client):
    _override(make_service(model=FakeModel(block("{}"))))
    r = client.post("/api/search", json={"query": "all"})
    assert r.status_code == 200
    assert (r.json()["page"], r.json()["pageSize"]) == (1, 20)
    assert r.json()["totalCount"] == 6
    assert r.json()["usedFallback"] is True


def test_fallback_flag_is_exposed(client):
    _override(make_service(model=FakeModel("nothing useful")))
    r = client.post("/api/search", json={"query": "developer"})
    assert r.status_code == 200
    assert r.json()["usedFallback"] is True


@pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}, {"query": None}, {"query": 42}, {"query": ["java"]}])
def test_missing_or_invalid_query_is_400(client, payload):
    model = FakeModel()
    _override(make_service(model=model))
    r = client.post("/api/search", json=payload)
    assert r.status_code == 400
    assert r.json()["detail"] == "Query is required"
    assert model.calls == []


@pytest.mark.parametrize("payload", [{"query": "java", "page": 0}, {"query": "java", "pageSize": 0}, {"query": "java", "pageSize": 1000}])
def test_bad_paging_is_422(client, payload):
    _override(make_service())
    r = client.post("/api/search", json=payload)
    assert r.status_code == 422


def test_model_failure_is_502_without_internals(client):
    _override(make_service(model=FakeModel(error=FilterModelError("invalid api key sk-123"))))
    r = client.post("/api/search", json={"query": "java"})
    assert r.status_code == 502
    assert r.json() == {"detail": "Filter extraction failed"}


def test_storage_failure_is_500(client):
    _override(make_service(model=FakeModel(block("{}")), collection=FakeCollection(fail=True)))
    r = client.post("/api/search", json={"query": "java"})
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal Server Error"}


def test_service_not_ready_is_503(client):
    r = client.post("/api/search", json={"query": "java"})
    assert r.status_code == 503


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
