from __future__ import annotations

from app.crud.cpl_mapping import join_cpl_list, merged_cpl_ids_by_content, split_cpl_list
from app.models.cpl_mapping import ContentCplMapping


def test_cpl_list_split_and_join():
    assert split_cpl_list(" a, b,,a ,c ") == ["a", "b", "c"]
    assert split_cpl_list(None) == []
    assert join_cpl_list(["a", " b ", "a"]) == "a, b"
    assert join_cpl_list([]) is None


def test_merged_cpl_ids_span_packages_and_users(db_session, make_user):
    one = make_user("one@example.com")
    two = make_user("two@example.com")
    db_session.add_all(
        [
            ContentCplMapping(user_id=one.id, content_id="C1", package_uuid="P1", cpl_list="x, y"),
            ContentCplMapping(user_id=two.id, content_id="C1", package_uuid="P2", cpl_list="y, z"),
            ContentCplMapping(user_id=one.id, content_id="C2", package_uuid="P1", cpl_list=None),
        ]
    )
    db_session.commit()
    merged = merged_cpl_ids_by_content(db_session)
    assert merged["C1"] == ["x", "y", "z"]
    assert merged["C2"] == []
    assert merged_cpl_ids_by_content(db_session, []) == {}


def test_upsert_requires_management_role(client, db_session, make_user):
    make_user("viewer@example.com", role="viewer")
    r = client.put(
        "/cpl-mappings",
        json={"content_id": "C1", "package_uuid": "P1", "cpl_ids": ["a"]},
        headers={"X-User-Email": "viewer@example.com"},
    )
    assert r.status_code == 403


def test_upsert_is_keyed_on_user_content_package(client, db_session, make_user, make_order):
    user = make_user("cs@example.com", role="client_service")
    make_order(user, content_id="C1", package_uuid="P1", film_id="F1", content_title="Feature")
    headers = {"X-User-Email": "cs@example.com"}

    r = client.put(
        "/cpl-mappings",
        json={"content_id": "C1", "package_uuid": "P1", "cpl_ids": "cpl-1, cpl-2, cpl-1"},
        headers=headers,
    )
    assert r.status_code == 200
    first = r.json()
    assert first["cpl_ids"] == ["cpl-1", "cpl-2"]

    r = client.put(
        "/cpl-mappings",
        json={"content_id": "C1", "package_uuid": "P1", "cpl_ids": ["cpl-3"]},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["id"] == first["id"]
    assert r.json()["cpl_ids"] == ["cpl-3"]

    r = client.get("/cpl-mappings", headers=headers)
    assert [m["cpl_ids"] for m in r.json()] == [["cpl-3"]]

    r = client.get("/cpl-mappings/contents?q=feat", headers=headers)
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    assert rows[0]["content_id"] == "C1"
    assert rows[0]["booking_count"] == 1
    assert rows[0]["cpl_ids"] == ["cpl-3"]
