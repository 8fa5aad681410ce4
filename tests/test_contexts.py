"""Context lifecycle and notification log endpoints."""
import pytest

from app.crm import create_app
from app.crm.db import create_all
from app.crm.notifications.events import ENTITY_ADDED_KEY


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORE_BACKEND", "sql")
    monkeypatch.setenv("NOTIFICATIONS_MAX", "3")
    monkeypatch.delenv("STORE_QUOTA_BYTES", raising=False)
    monkeypatch.delenv("ENTITY_PATH_TEMPLATE", raising=False)

    app = create_app()
    create_all(app)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def test_open_and_close_context(client):
    r = client.post("/contexts")
    assert r.status_code == 201
    cid = r.json["context_id"]
    assert r.json["toasts"] == []

    assert client.get(f"/contexts/{cid}/toasts").status_code == 200
    assert client.delete(f"/contexts/{cid}").status_code == 204
    assert client.get(f"/contexts/{cid}/toasts").status_code == 404
    assert client.delete(f"/contexts/{cid}").status_code == 404


def test_notification_log_endpoints(client):
    cid = client.post("/contexts").json["context_id"]

    r = client.post(f"/contexts/{cid}/notifications", json={"message": "first"})
    assert r.status_code == 201
    client.post(f"/contexts/{cid}/notifications", data={"message": "second"})
    assert client.get(f"/contexts/{cid}/notifications").json["notifications"] == ["second", "first"]

    assert client.delete(f"/contexts/{cid}/notifications").status_code == 204
    assert client.get(f"/contexts/{cid}/notifications").json["notifications"] == []


def test_notification_log_survives_reopen(client):
    cid = client.post("/contexts").json["context_id"]
    client.post(f"/contexts/{cid}/notifications", json={"message": "kept"})
    client.delete(f"/contexts/{cid}")

    other = client.post("/contexts").json["context_id"]
    assert client.get(f"/contexts/{other}/notifications").json["notifications"] == ["kept"]


def test_notification_log_is_capped_from_config(client):
    cid = client.post("/contexts").json["context_id"]
    for m in ("1", "2", "3", "4"):
        client.post(f"/contexts/{cid}/notifications", json={"message": m})
    assert client.get(f"/contexts/{cid}/notifications").json["notifications"] == ["4", "3", "2"]


def test_blank_notification_rejected(client):
    cid = client.post("/contexts").json["context_id"]
    r = client.post(f"/contexts/{cid}/notifications", json={"message": "   "})
    assert r.status_code == 400


def test_malformed_pending_entry_does_not_break_open(app, client):
    store = app.extensions["crm_profile"].store
    store.set_item(ENTITY_ADDED_KEY, "{broken")
    r = client.post("/contexts")
    assert r.status_code == 201
    assert r.json["toasts"] == []
    assert store.get_item(ENTITY_ADDED_KEY) == "{broken"


def test_disabled_store_still_serves(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORE_BACKEND", "disabled")
    app = create_app()
    create_all(app)
    client = app.test_client()

    tab_a = client.post("/contexts").json["context_id"]
    tab_b = client.post("/contexts").json["context_id"]
    r = client.post("/customers", json={"custno": "C010", "custname": "Acme", "context_id": tab_a})
    assert r.status_code == 201
    assert len(client.get(f"/contexts/{tab_a}/toasts").json["toasts"]) == 1
    assert client.get(f"/contexts/{tab_b}/toasts").json["toasts"] == []


def test_notification_log_shared_between_open_contexts(client):
    tab_a = client.post("/contexts").json["context_id"]
    tab_b = client.post("/contexts").json["context_id"]
    client.post("/customers", json={"custno": "C010", "custname": "Acme", "context_id": tab_a})
    client.post(f"/contexts/{tab_b}/notifications", json={"message": "from b"})

    expected = ["from b", "New customer added: Acme"]
    assert client.get(f"/contexts/{tab_a}/notifications").json["notifications"] == expected
    assert client.get(f"/contexts/{tab_b}/notifications").json["notifications"] == expected
