from __future__ import annotations

from sqlalchemy import select

from app.models.cpl_mapping import ContentCplMapping
from app.models.orders import Order

CS = {"X-User-Email": "cs@example.com"}
VIEWER = {"X-User-Email": "viewer@example.com"}


def _seed(db_session, make_user, make_order, make_distributor):
    cs = make_user("cs@example.com", role="client_service")
    make_user("viewer@example.com", role="viewer")
    make_order(cs, theatre_id="THR-1", studio_id="S1", qw_company_id="W1", theatre_city="Austin", theatre_state="TX")
    make_order(cs, theatre_id="THR-2", studio_id="S2", qw_company_id="W2", delivery_method="Hard drive courier")
    make_order(cs, content_id="C2", content_title="Second", theatre_id="THR-3", booking_ref="DLV-OLD",
               studio_id="S1", qw_company_id="W1", delivery_method="WireTAP")
    make_distributor(cs, "S1", "W1", token="tok-1", studio_name="S1")
    db_session.add(ContentCplMapping(user_id=cs.id, content_id="C1", package_uuid="PKG-1", cpl_list="cpl-1"))
    db_session.commit()
    return cs


def test_dashboard_summarizes_every_content(client, db_session, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)

    r = client.get("/bookings", headers=VIEWER)
    assert r.status_code == 200
    payload = r.json()
    items = {i["content_id"]: i for i in payload["items"]}
    assert items["C1"]["booking_count"] == 2
    assert items["C1"]["pending_bookings"] == 2
    assert items["C1"]["cpl_ids"] == ["cpl-1"]
    assert items["C2"]["shipped"] == 1
    assert items["C2"]["status_source"] == "local"
    assert payload["totals"] == {"total_bookings": 3, "total_pending": 2, "total_completed": 0, "success_rate": 0}

    r = client.get("/bookings?q=second", headers=VIEWER)
    assert [i["content_id"] for i in r.json()["items"]] == ["C2"]


def test_dashboard_with_live_status(client, db_session, booking_api, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)
    booking_api.statuses["C2"] = [{"dcpDeliveryId": "DLV-OLD", "status": "completed", "deliveryType": "Electronic"}]

    r = client.get("/bookings?include_status=true", headers=VIEWER)
    items = {i["content_id"]: i for i in r.json()["items"]}
    assert items["C2"]["completed"] == 1
    assert items["C2"]["completion_rate"] == 100
    assert items["C2"]["status_source"] == "external"
    assert items["C2"]["status_snapshot"][0]["delivery_id"] == "DLV-OLD"


def test_submit_is_gated_to_management(client, db_session, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)
    r = client.post("/bookings/C1/submit", headers=VIEWER)
    assert r.status_code == 403


def test_submit_reports_partial_outcome(client, db_session, booking_api, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)

    r = client.post("/bookings/C1/submit", headers=CS)
    assert r.status_code == 200
    report = r.json()
    assert report["outcome"] == "partial"
    assert report["created_count"] == 1
    assert report["failed_distributors"] == ["S2"]

    db_session.expire_all()
    refs = {o.theatre_id: o.booking_ref for o in db_session.execute(select(Order)).scalars().all()}
    assert refs["THR-1"] == "DLV-tok-1-1"
    assert refs["THR-2"] is None

    r = client.post("/bookings/C2/submit", headers=CS)
    assert r.json()["outcome"] == "noop"

    r = client.post("/bookings/NOPE/submit", headers=CS)
    assert r.status_code == 404


def test_deliveries_degrade_to_local_status(client, db_session, booking_api, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)
    booking_api.status_failures["tok-1"] = "Unauthorized"

    r = client.get("/bookings/C2/deliveries", headers=VIEWER)
    assert r.status_code == 200
    details = r.json()
    assert details["status_source"] == "local"
    assert details["warning"]
    row = details["deliveries"][0]
    assert row["status"] == "shipped"
    assert row["delivery_type"] == "WireTAP"


def test_deliveries_show_external_status_and_labels(client, db_session, booking_api, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)
    booking_api.statuses["C2"] = [{"theatreId": "THR-3", "status": "downloading", "progress": 55}]

    r = client.get("/bookings/C2/deliveries", headers=VIEWER)
    details = r.json()
    assert details["status_source"] == "external"
    assert details["warning"] is None
    assert details["deliveries"][0]["status"] == "downloading"
    assert details["deliveries"][0]["progress"] == 55

    r = client.get("/bookings/C1/deliveries", headers=VIEWER)
    rows = {row["theatre_id"]: row for row in r.json()["deliveries"]}
    assert rows["THR-1"]["location"] == "Austin, TX"
    assert rows["THR-1"]["delivery_type"] == "Electronic - Partner"
    assert rows["THR-2"]["delivery_type"] == "Hard Drive"
    assert rows["THR-1"]["status"] == "pending"

    assert client.get("/bookings/NOPE/deliveries", headers=VIEWER).status_code == 404


def test_status_batch(client, db_session, booking_api, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)
    booking_api.statuses["C2"] = [{"dcpDeliveryId": "DLV-OLD", "status": "failed"}]

    r = client.post("/bookings/statuses", json={"content_ids": ["C2", "C1"]}, headers=VIEWER)
    assert r.status_code == 200
    items = r.json()
    assert [i["content_id"] for i in items] == ["C1", "C2"]
    assert items[0]["status_source"] == "local"
    assert items[1]["status_source"] == "external"
    assert items[1]["records"][0]["status"] == "failed"

    assert client.post("/bookings/statuses", json={"content_ids": []}, headers=VIEWER).status_code == 422


def test_booking_reads_require_identity(client, db_session, make_user, make_order, make_distributor):
    _seed(db_session, make_user, make_order, make_distributor)

    assert client.get("/bookings").status_code == 401
    assert client.get("/bookings/C1/deliveries").status_code == 401
    assert client.post("/bookings/statuses", json={"content_ids": ["C1"]}).status_code == 401

    # an unregistered caller with an identity can still read
    r = client.get("/bookings", headers={"X-User-Email": "guest@example.com"})
    assert r.status_code == 200
