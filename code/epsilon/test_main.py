from datetime import date

import pytest
from fastapi.testclient import TestClient

from epsilon.core import pipeline
from epsilon.core.storage import MemoryStorage
from epsilon.core.store import AppStore
from epsilon.main import create_app


@pytest.fixture
def store():
    return AppStore(MemoryStorage())


@pytest.fixture
def client(store, monkeypatch):
    def offline(prompt):
        raise RuntimeError("offline")

    monkeypatch.setattr(pipeline, "query_cfo", offline)
    return TestClient(create_app(store))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_snapshot_round_trip_uses_camel_case(client):
    resp = client.patch("/snapshot", json={"cashBalance": 1500, "monthlyBurn": 1000})
    assert resp.status_code == 200
    body = client.get("/snapshot").json()
    assert body["cashBalance"] == 1500
    assert body["monthlyBurn"] == 1000
    assert body["autopilotPct"] == 25
    assert body["txns"] == []


def test_autopilot_pct_requires_override(client):
    assert client.patch("/snapshot", json={"autopilotPct": 12}).status_code == 409
    client.patch("/snapshot", json={"monthlyBurn": 1000})
    view = client.post("/autopilot/override", json={"enabled": True}).json()
    assert view["autopilot"]["override"] is True
    body = client.patch("/snapshot", json={"autopilotPct": 2}).json()
    assert body["autopilotPct"] == 15


def test_dashboard(client):
    client.patch("/snapshot", json={"cashBalance": 20000, "monthlyBurn": 1000, "reserveBalance": 2500})
    view = client.get("/dashboard").json()
    assert view["cash"]["runwayDays"] == 600
    assert view["cash"]["risk"] == "Stable"
    assert view["autopilot"]["mode"] == "boost"
    assert view["autopilot"]["suggestedPct"] == 16
    assert view["autopilot"]["monthsToGoal"] == 4


def test_transaction_lifecycle(client, store):
    resp = client.post("/transactions", json={"name": "Rent", "amount": "4200", "category": "Fixed"})
    assert resp.status_code == 201
    txn = resp.json()
    assert txn["amount"] == -4200
    assert txn["date"] == date.today().isoformat()

    income = client.post("/transactions", json={"name": "Payout", "amount": 900, "kind": "income"}).json()
    listing = client.get("/transactions").json()
    assert [t["id"] for t in listing["txns"]] == [income["id"], txn["id"]]
    assert listing["stats"] == {"income": 900.0, "expense": -4200.0, "net": -3300.0}
    assert "Fixed" in listing["categories"]

    assert client.get("/transactions", params={"q": "rent"}).json()["txns"][0]["name"] == "Rent"
    assert client.delete(f"/transactions/{txn['id']}").status_code == 204
    assert client.delete(f"/transactions/{txn['id']}").status_code == 404
    assert [t.id for t in store.txns] == [income["id"]]


def test_transaction_validation(client):
    assert client.post("/transactions", json={"name": "Rent", "amount": "abc"}).status_code == 400
    assert client.post("/transactions", json={"name": "  ", "amount": "10"}).status_code == 400
    assert client.get("/transactions", params={"window": "90d"}).status_code == 422


def test_sample_transactions(client):
    resp = client.post("/transactions/samples")
    assert resp.status_code == 201
    assert len(resp.json()) == 4
    assert len(client.get("/transactions", params={"window": "all"}).json()["txns"]) == 4


def test_chat_falls_back_to_local_reply(client):
    client.patch("/snapshot", json={"cashBalance": 1500, "monthlyBurn": 1000})
    reply = client.post("/chat", json={"message": "hello"}).json()["reply"]
    assert reply.startswith("Runway: 45 days (Act). Depletion: ")
    assert reply.endswith("Autopilot: 25%.")


def test_chat_accepts_client_context(client):
    context = {
        "cashBalance": 0, "monthlyBurn": 0, "runwayDays": None, "risk": "Unknown",
        "depletionDate": None, "autopilotPct": 16, "reserveBalance": 0,
    }
    reply = client.post("/chat", json={"message": "thanks", "context": context}).json()["reply"]
    assert reply == "Runway: not set (Unknown). Depletion: not set. Autopilot: 16%."


def test_chat_reserve_reply_follows_store_target(monkeypatch):
    monkeypatch.setattr(pipeline, "query_cfo", lambda prompt: {"choices": []})
    client = TestClient(create_app(AppStore(MemoryStorage(), target_months=6)))
    client.patch("/snapshot", json={"monthlyBurn": 1000, "reserveBalance": 500})
    reply = client.post("/chat", json={"message": "Is my reserve enough?"}).json()["reply"]
    assert "6-month goal" in reply
    assert "$5,500 short" in reply


def test_dashboard_with_far_future_runway(client):
    client.patch("/snapshot", json={"cashBalance": 1000000, "monthlyBurn": 10})
    assert client.get("/dashboard").json()["cash"]["depletionDate"] == "9999-12-31"
