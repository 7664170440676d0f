from __future__ import annotations

from sqlalchemy import select

from app.models.distributors import Distributor
from app.services.distributor_resolver import decode_credential

ADMIN = {"X-User-Email": "admin@example.com"}


def _seed_users(make_user):
    make_user("admin@example.com", role="admin")
    make_user("viewer@example.com", role="viewer")
    make_user("norole@example.com")
    make_user("inactive@example.com", role="admin", status="inactive")


def test_distributor_views_are_role_gated(client, db_session, make_user):
    _seed_users(make_user)
    assert client.get("/distributors", headers={"X-User-Email": "viewer@example.com"}).status_code == 403
    assert client.get("/distributors", headers={"X-User-Email": "norole@example.com"}).status_code == 403
    assert client.get("/distributors", headers={"X-User-Email": "inactive@example.com"}).status_code == 403
    assert client.get("/distributors", headers={"X-User-Email": "ghost@example.com"}).status_code == 401
    assert client.get("/distributors", headers=ADMIN).status_code == 200


def test_create_encodes_token_and_never_returns_it(client, db_session, make_user):
    _seed_users(make_user)
    r = client.post(
        "/distributors",
        json={
            "studio_id": "S1",
            "studio_name": "Studio One",
            "qw_company_id": "W1",
            "qw_company_name": "Wire One",
            "access_token": "pat-secret",
        },
        headers=ADMIN,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["has_credential"] is True
    assert "pat-secret" not in r.text
    assert "qw_pat_encrypted" not in body

    db_session.expire_all()
    stored = db_session.execute(select(Distributor)).scalar_one()
    assert stored.qw_pat_encrypted != "pat-secret"
    assert decode_credential(stored.qw_pat_encrypted) == "pat-secret"
    assert stored.updated_by == "admin@example.com"

    dup = client.post(
        "/distributors",
        json={"studio_id": "S1", "studio_name": "Again", "qw_company_id": "W1", "qw_company_name": "Again"},
        headers=ADMIN,
    )
    assert dup.status_code == 409


def test_listing_merges_order_candidates(client, db_session, make_user, make_order, make_distributor):
    _seed_users(make_user)
    owner = make_user("owner@example.com")
    make_distributor(owner, "S1", "W1", token="tok", studio_name="Alpha Studio")
    make_order(owner, studio_id="S1", studio_name="Alpha Studio", qw_company_id="W1", qw_company_name="Wire")
    make_order(owner, studio_id="S2", studio_name="Beta Studio", qw_company_id="W2", qw_company_name="Wire")
    make_order(owner, studio_id="S3", studio_name=None, qw_company_id="W3", qw_company_name="Wire")

    r = client.get("/distributors", headers=ADMIN)
    payload = r.json()
    assert payload["total"] == 2
    assert [(i["studio_id"], i["is_from_orders"]) for i in payload["items"]] == [("S1", False), ("S2", True)]

    r = client.get("/distributors?sort_by=studio_name&order=desc", headers=ADMIN)
    assert [i["studio_id"] for i in r.json()["items"]] == ["S2", "S1"]

    r = client.get("/distributors?q=beta", headers=ADMIN)
    assert [i["studio_id"] for i in r.json()["items"]] == ["S2"]


def test_promote_candidate_and_update_credential(client, db_session, make_user, make_order):
    _seed_users(make_user)
    owner = make_user("owner@example.com")
    make_order(owner, studio_id="S2", studio_name="Beta Studio", qw_company_id="W2", qw_company_name="Wire Two")

    missing = client.post("/distributors/promote", json={"studio_id": "S9", "qw_company_id": "W9"}, headers=ADMIN)
    assert missing.status_code == 404

    r = client.post("/distributors/promote", json={"studio_id": "S2", "qw_company_id": "W2"}, headers=ADMIN)
    assert r.status_code == 201
    created = r.json()
    assert created["studio_name"] == "Beta Studio"
    assert created["has_credential"] is False

    r = client.patch(f"/distributors/{created['id']}/credential", json={"access_token": "new-pat"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["has_credential"] is True

    r = client.patch(f"/distributors/{created['id']}/credential", json={"access_token": ""}, headers=ADMIN)
    assert r.json()["has_credential"] is False

    assert client.patch("/distributors/999/credential", json={}, headers=ADMIN).status_code == 404
