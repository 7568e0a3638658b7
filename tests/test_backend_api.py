# tests/test_backend_api.py
"""
End-to-end HTTP tests through FastAPI's TestClient on an in-memory database.
"""

import pytest
from fastapi.testclient import TestClient

from backend.main import create_app
from core.config import Settings


@pytest.fixture
def app():
    return create_app(Settings(database_url="sqlite://"))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def _post(client, route, body=None):
    return client.post(f"/api/{route}", json=body or {})


def _setup_store_and_user(client):
    store = _post(client, "Store/create", {"name": "Corner Cafe", "address": "1 Main St"}).json()["storeId"]
    user = _post(client, "User/register", {"username": "alice", "email": "alice@example.com", "password": "secret1"})
    return store, user.json()["userId"]


def test_liveness_and_metadata(client):
    root = client.get("/").json()
    assert root["status"] == "ok"
    assert root["audit_enabled"] is False
    assert client.get("/metadata").json()["project"] == "StoreDirectory"


def test_health_reports_database_and_engine(client):
    data = client.get("/health").json()
    assert data["status"] == "ok"
    assert data["database_connected"] is True
    assert data["sync"]["concepts"] == 6


def test_sync_map_endpoints(client):
    rules = client.get("/syncs").json()
    assert rules["count"] == len(rules["rules"]) > 0
    assert any(r["id"] == "CascadeStoreDeletion" for r in rules["rules"])
    text = client.get("/syncs/describe").text
    assert "AddRatingOnReviewCreated" in text
    concepts = client.get("/syncs/concepts").json()
    assert concepts["Review"]["commands"] == ["create", "delete", "delete_for_store", "delete_for_user"]


def test_status_summary(client):
    summary = client.get("/status/summary").json()
    assert summary["concepts"] == ["Requesting", "Store", "User", "Review", "Rating", "Tagging"]
    assert summary["audit_enabled"] is False
    assert summary["engine"]["rules"] == summary["rules"]


def test_audit_endpoint_disabled_without_supabase(client):
    assert client.get("/audit/recent").status_code == 503


def test_store_round_trip(client):
    created = _post(client, "Store/create", {"name": "Deli", "address": "2 Side St"})
    assert created.status_code == 200
    store_id = created.json()["storeId"]

    fetched = _post(client, "Store/_get", {"storeId": store_id})
    assert fetched.json() == {"storeId": store_id, "name": "Deli", "address": "2 Side St"}
    assert _post(client, "Store/_by_address", {"address": "2 Side St"}).json() == [{"storeId": store_id}]


def test_business_failure_is_400(client):
    resp = _post(client, "Store/create", {"name": "", "address": "2 Side St"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Store name is required"}


def test_missing_record_is_400(client):
    resp = _post(client, "Store/_get", {"storeId": "nope"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Store not found"}


def test_unhandled_route_is_404(client):
    resp = _post(client, "Store/teleport", {"storeId": "x"})
    assert resp.status_code == 404
    assert resp.json()["error"].startswith("No synchronization handled /Store/teleport")
    # a query without its key matches no rule either
    assert _post(client, "Store/_get", {}).status_code == 404


def test_review_flow_updates_rating(client):
    store, user = _setup_store_and_user(client)

    five = _post(client, "Review/create", {"userId": user, "storeId": store, "text": "great", "rating": 5})
    assert five.status_code == 200
    _post(client, "Review/create", {"userId": user, "storeId": store, "text": "meh", "rating": 1})
    assert _post(client, "Rating/_get", {"storeId": store}).json()["aggregatedRating"] == 3.0

    assert _post(client, "Review/delete", {"reviewId": five.json()["reviewId"]}).status_code == 200
    assert _post(client, "Rating/_get", {"storeId": store}).json() == {
        "storeId": store,
        "aggregatedRating": 1.0,
        "reviewCount": 1,
    }
    assert len(_post(client, "Review/_for_store", {"storeId": store}).json()) == 1


def test_review_for_unknown_store_is_rejected(client):
    _, user = _setup_store_and_user(client)
    resp = _post(client, "Review/create", {"userId": user, "storeId": "ghost", "text": "?", "rating": 3})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Store not found"}


def test_invalid_rating_is_rejected(client):
    store, user = _setup_store_and_user(client)
    resp = _post(client, "Review/create", {"userId": user, "storeId": store, "text": "?", "rating": 9})
    assert resp.status_code == 400
    assert "between 1 and 5" in resp.json()["error"]


def test_store_deletion_cascades_over_http(client):
    store, user = _setup_store_and_user(client)
    _post(client, "Tagging/add_tag", {"storeId": store, "tag": "coffee"})
    _post(client, "Review/create", {"userId": user, "storeId": store, "text": "ok", "rating": 4})

    assert _post(client, "Store/delete", {"storeId": store}).json() == {"storeId": store}
    assert _post(client, "Tagging/_stores_by_tag", {"tag": "coffee"}).json() == []
    assert _post(client, "Review/_by_user", {"userId": user}).json() == []
    unrated = _post(client, "Rating/_get", {"storeId": store}).json()
    assert unrated == {"storeId": store, "aggregatedRating": 0, "reviewCount": 0}


def test_tagging_requires_existing_store(client):
    resp = _post(client, "Tagging/add_tag", {"storeId": "ghost", "tag": "coffee"})
    assert resp.json() == {"error": "Store not found"}


def test_authentication(client):
    _, user = _setup_store_and_user(client)
    ok = _post(client, "User/authenticate", {"usernameOrEmail": "alice", "password": "secret1"})
    assert ok.json() == {"userId": user}
    bad = _post(client, "User/authenticate", {"usernameOrEmail": "alice", "password": "nope!!"})
    assert bad.status_code == 400


def test_responses_are_discarded(app, client):
    _post(client, "Store/create", {"name": "Deli", "address": "2 Side St"})
    _post(client, "Store/teleport", {})
    requesting = app.state.sync_engine.registry.get("Requesting")
    assert requesting.pending_count() == 0


def test_contract_violation_is_500(registry):
    def broken(name, address):
        raise RuntimeError("disk full")

    registry.get("Store").create = broken
    with TestClient(create_app(Settings(), registry=registry)) as c:
        resp = _post(c, "Store/create", {"name": "Deli", "address": "2 Side St"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal error in Store.create"}


def test_engine_error_still_discards_request(registry):
    app = create_app(Settings(max_cascade_depth=1), registry=registry)
    with TestClient(app) as c:
        resp = _post(c, "Store/create", {"name": "Deli", "address": "2 Side St"})
    assert resp.status_code == 500
    assert registry.get("Requesting").pending_count() == 0


def test_contract_violation_still_discards_request(registry):
    def broken(name, address):
        raise RuntimeError("disk full")

    registry.get("Store").create = broken
    with TestClient(create_app(Settings(), registry=registry)) as c:
        assert _post(c, "Store/create", {"name": "Deli", "address": "2 Side St"}).status_code == 500
    assert registry.get("Requesting").pending_count() == 0
