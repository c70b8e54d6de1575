import base64
import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from medgate.app.config import settings
from medgate.app.deps import request_message
from medgate.app.domain.sign import generate_keypair, sign_message
from medgate.app.infra.db import bind_engine, init_db
from medgate.app.main import app
from medgate.app.routers.auth import registration_message

ADMIN_TOKEN = "operator-secret"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "require_signatures", True)
    monkeypatch.setattr(settings, "admin_token", ADMIN_TOKEN)
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    bind_engine(engine)
    init_db()
    return TestClient(app)


def _key_request(actor_id: str, private: bytes, public: bytes) -> dict:
    signature = sign_message(private, registration_message(actor_id, public.hex()))
    return {
        "actor_id": actor_id,
        "public_key_hex": public.hex(),
        "signature": base64.b64encode(signature).decode(),
    }


def _provision(client, actor_id: str) -> bytes:
    private, public = generate_keypair()
    resp = client.post(
        "/auth/keys",
        json=_key_request(actor_id, private, public),
        headers={"X-Admin-Token": ADMIN_TOKEN},
    )
    assert resp.status_code == 201
    return private


def _signed(private: bytes, caller: str, method: str, path: str, body: bytes = b"") -> dict:
    signature = sign_message(private, request_message(caller, method, path, body))
    return {"X-Caller-Id": caller, "X-Signature": base64.b64encode(signature).decode()}


class Caller:
    """Test identity holding a provisioned key; signs every request it sends."""

    def __init__(self, client, actor_id: str) -> None:
        self.client = client
        self.actor_id = actor_id
        self.private = _provision(client, actor_id)

    def send(self, method: str, path: str, payload=None, **kwargs):
        body = json.dumps(payload).encode() if payload is not None else b""
        headers = _signed(self.private, self.actor_id, method, path, body)
        if payload is not None:
            headers["Content-Type"] = "application/json"
        return self.client.request(method, path, content=body or None, headers=headers, **kwargs)


def test_app_title_and_tags():
    assert app.title == "medgate API"
    tags = {
        tag
        for operations in app.openapi()["paths"].values()
        for operation in operations.values()
        for tag in operation.get("tags", [])
    }
    assert {"records", "access", "notifications", "auth"}.issubset(tags)


def test_end_to_end_grant_and_revoke(client):
    alice, bob = Caller(client, "A"), Caller(client, "B")

    stored = alice.send("PUT", "/records/me", {"name": "Alice", "data_hash": "hash1"})
    assert stored.status_code == 200
    t1 = stored.json()["timestamp"]

    denied = bob.send("GET", "/records/A")
    assert denied.status_code == 403
    assert denied.json() == {"detail": "Access denied: unauthorized viewer"}

    assert alice.send("POST", "/access/B").json()["granted"] is True
    viewed = bob.send("GET", "/records/A").json()
    assert (viewed["name"], viewed["data_hash"], viewed["timestamp"]) == ("Alice", "hash1", t1)
    assert viewed["exists"] is True

    assert alice.send("DELETE", "/access/B").json()["granted"] is False
    assert bob.send("GET", "/records/A").status_code == 403


def test_missing_record_is_zero_value_with_exists_flag(client):
    nobody = Caller(client, "nobody")
    resp = nobody.send("GET", "/records/nobody")
    assert resp.status_code == 200
    assert resp.json() == {"patient": "nobody", "name": "", "data_hash": "", "timestamp": 0, "exists": False}


def test_empty_record_is_distinguishable_from_missing(client):
    patient = Caller(client, "pat-1")
    patient.send("PUT", "/records/me", {"name": "", "data_hash": ""})
    resp = patient.send("GET", "/records/pat-1").json()
    assert resp["exists"] is True
    assert resp["name"] == "" and resp["data_hash"] == ""


def test_access_status_and_grantee_listing(client):
    patient, doctor = Caller(client, "pat-1"), Caller(client, "doc-1")
    patient.send("POST", "/access/doc-2")
    patient.send("POST", "/access/doc-1")
    patient.send("POST", "/access/doc-1")
    patient.send("DELETE", "/access/doc-3")

    assert patient.send("GET", "/access/doc-1").json()["granted"] is True
    assert patient.send("GET", "/access/doc-3").json()["granted"] is False
    assert patient.send("GET", "/access/").json() == {
        "owner": "pat-1",
        "grantees": ["doc-1", "doc-2"],
    }
    # a grant never flows back the other way
    assert doctor.send("GET", "/access/pat-1").json()["granted"] is False


def test_notification_feed_reflects_mutations_only(client):
    patient, doctor = Caller(client, "pat-1"), Caller(client, "doc-1")
    patient.send("PUT", "/records/me", {"name": "Alice", "data_hash": "hash1"})
    patient.send("POST", "/access/doc-1")
    doctor.send("GET", "/records/pat-1")
    patient.send("DELETE", "/access/doc-1")

    feed = client.get("/notifications/").json()
    assert [n["kind"] for n in feed] == ["RecordAdded", "AccessGranted", "AccessRevoked"]
    assert feed[0]["data_hash"] == "hash1"
    assert feed[1]["target_id"] == "doc-1"

    granted = client.get("/notifications/", params={"kind": "AccessGranted"}).json()
    assert len(granted) == 1
    after = client.get("/notifications/", params={"after_seq": feed[1]["seq"]}).json()
    assert [n["kind"] for n in after] == ["AccessRevoked"]


def test_missing_caller_header_is_rejected(client):
    assert client.put("/records/me", json={"name": "x", "data_hash": "y"}).status_code == 401


def test_unprovisioned_identity_is_rejected(client):
    assert client.get("/records/ghost", headers={"X-Caller-Id": "ghost"}).status_code == 401


def test_caller_cannot_act_as_another_identity(client):
    alice, mallory = Caller(client, "A"), Caller(client, "M")
    alice.send("PUT", "/records/me", {"name": "Alice", "data_hash": "hash1"})

    # bare header naming someone else
    assert client.post("/access/M", headers={"X-Caller-Id": "A"}).status_code == 401
    # own key, someone else's name
    forged = _signed(mallory.private, "A", "POST", "/access/M")
    assert client.post("/access/M", headers=forged).status_code == 401

    assert alice.send("GET", "/access/M").json()["granted"] is False
    assert mallory.send("GET", "/records/A").status_code == 403


def test_key_provisioning_requires_operator_credential(client):
    private, public = generate_keypair()
    body = _key_request("A", private, public)

    assert client.post("/auth/keys", json=body).status_code == 403
    assert client.post("/auth/keys", json=body, headers={"X-Admin-Token": "guess"}).status_code == 403
    assert client.get("/auth/keys/A").status_code == 404

    # a squatter cannot then sign as the identity
    headers = _signed(private, "A", "POST", "/access/M")
    assert client.post("/access/M", headers=headers).status_code == 401


def test_key_provisioning_disabled_without_configured_token(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_token", "")
    private, public = generate_keypair()
    resp = client.post("/auth/keys", json=_key_request("A", private, public), headers={"X-Admin-Token": ""})
    assert resp.status_code == 403


def test_signature_bound_to_path(client):
    patient = Caller(client, "pat-9")
    headers = _signed(patient.private, "pat-9", "POST", "/access/doc-1")
    assert client.post("/access/doc-1", headers=headers).status_code == 200
    assert client.post("/access/doc-2", headers=headers).status_code == 401


def test_signature_bound_to_body(client):
    patient = Caller(client, "pat-8")
    body = b'{"name":"Alice","data_hash":"hash1"}'
    headers = _signed(patient.private, "pat-8", "PUT", "/records/me", body)
    headers["Content-Type"] = "application/json"

    assert client.put("/records/me", content=body, headers=headers).status_code == 200
    tampered = b'{"name":"Alice","data_hash":"hashX"}'
    assert client.put("/records/me", content=tampered, headers=headers).status_code == 401


def test_key_registration_cannot_be_replaced(client):
    Caller(client, "pat-7")
    private, public = generate_keypair()
    resp = client.post(
        "/auth/keys",
        json=_key_request("pat-7", private, public),
        headers={"X-Admin-Token": ADMIN_TOKEN},
    )
    assert resp.status_code == 409


def test_key_registration_requires_proof_of_possession(client):
    _, public = generate_keypair()
    resp = client.post(
        "/auth/keys",
        json={
            "actor_id": "pat-6",
            "public_key_hex": public.hex(),
            "signature": base64.b64encode(b"x" * 64).decode(),
        },
        headers={"X-Admin-Token": ADMIN_TOKEN},
    )
    assert resp.status_code == 400
    assert client.get("/auth/keys/pat-6").status_code == 404


def test_unsigned_mode_still_protects_provisioned_identities(client, monkeypatch):
    monkeypatch.setattr(settings, "require_signatures", False)
    Caller(client, "A")

    assert client.put("/records/me", json={"name": "x", "data_hash": "y"}, headers={"X-Caller-Id": "demo"}).status_code == 200
    assert client.post("/access/M", headers={"X-Caller-Id": "A"}).status_code == 401
