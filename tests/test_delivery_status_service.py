from __future__ import annotations

import pytest
from sqlalchemy.orm import sessionmaker

from app.models.orders import Order
from app.schemas.bookings import DeliveryStatusRecord
from app.services.delivery_status_service import (
    DeliveryStatusMonitor,
    display_statuses,
    map_external_status,
    match_status_records,
    parse_status_records,
    poll_content_statuses,
    poll_status_plan,
    resolve_display_status,
)


@pytest.mark.parametrize(
    ("external", "delivery_type", "expected"),
    [
        ("pending", None, "pending"),
        ("shipped", None, "shipped"),
        ("downloading", None, "downloading"),
        ("completed", "Electronic", "downloaded"),
        ("completed", "Hard Drive", "delivered"),
        ("cancelled", None, "cancelled"),
        ("failed", None, "cancelled"),
        ("FAILED", None, "cancelled"),
        ("lost-in-space", None, None),
    ],
)
def test_map_external_status(external, delivery_type, expected):
    assert map_external_status(external, delivery_type) == expected


def test_unbooked_order_is_pending_regardless_of_external_record():
    order = Order(id=1, user_id=1, booking_ref=None)
    record = DeliveryStatusRecord(status="completed")
    assert resolve_display_status(order, record) == "pending"


def test_booked_order_without_record_is_assumed_shipped():
    order = Order(id=1, user_id=1, booking_ref="DLV-1")
    assert resolve_display_status(order, None) == "shipped"


def test_unknown_external_status_falls_back_to_shipped():
    order = Order(id=1, user_id=1, booking_ref="DLV-1")
    assert resolve_display_status(order, DeliveryStatusRecord(status="weird")) == "shipped"


def test_records_parse_external_field_names_and_skip_garbage():
    records = parse_status_records(
        [
            {"dcpDeliveryId": "D1", "theatreId": "T1", "theatreName": "Plaza", "status": "shipped", "progress": 40},
            {"booking_id": "D2", "status": "failed", "deliveryType": "Hard Drive"},
            {"status": ["not", "a", "string"]},
        ]
    )
    assert [(r.delivery_id, r.status) for r in records] == [("D1", "shipped"), ("D2", "failed")]
    assert records[0].theatre_name == "Plaza"
    assert records[1].delivery_type == "Hard Drive"


def test_matching_prefers_delivery_ref_then_theatre_id_then_name():
    by_ref = Order(id=1, user_id=1, booking_ref="D1", theatre_id="T9")
    by_theatre_id = Order(id=2, user_id=1, booking_ref="D-other", qw_theatre_id="QW-2")
    by_name = Order(id=3, user_id=1, booking_ref="D-x", theatre_name="Grand Palace")
    unmatched = Order(id=4, user_id=1, booking_ref="D-y", theatre_name="Nowhere")
    records = [
        DeliveryStatusRecord(delivery_id="D1", theatre_id="T1", status="downloading"),
        DeliveryStatusRecord(theatre_id="qw-2", status="completed"),
        DeliveryStatusRecord(theatre_name="grand palace ", status="cancelled"),
    ]

    matched = match_status_records([by_ref, by_theatre_id, by_name, unmatched], records)

    assert matched[1].status == "downloading"
    assert matched[2].status == "completed"
    assert matched[3].status == "cancelled"
    assert matched[4] is None
    assert display_statuses([by_ref, by_theatre_id, by_name, unmatched], records) == {
        1: "downloading",
        2: "downloaded",
        3: "cancelled",
        4: "shipped",
    }


def test_poll_plan_is_all_settled(booking_api):
    booking_api.statuses["C1"] = [{"dcpDeliveryId": "D1", "status": "shipped"}]
    booking_api.status_failures["bad"] = "Unauthorized"

    results = poll_status_plan(
        {
            "C1": [("Studio One", "good")],
            "C2": [("Studio Two", "bad")],
            "C3": [],
        },
        booking_api.factory,
        max_workers=3,
    )

    assert results["C1"].status_source == "external"
    assert [r.delivery_id for r in results["C1"].records] == ["D1"]
    assert results["C2"].status_source == "local"
    assert results["C2"].errors == ["Studio Two: Unauthorized"]
    assert results["C3"].status_source == "local"


def test_poll_plan_survives_crashing_client():
    def _factory(token):
        raise RuntimeError("boom")

    results = poll_status_plan({"C1": [("Studio", "tok")]}, _factory, max_workers=1)
    assert results["C1"].status_source == "local"
    assert results["C1"].errors == ["boom"]


def test_poll_content_statuses_uses_distributor_credentials(
    db_session, booking_api, make_user, make_order, make_distributor
):
    user = make_user("viewer@example.com")
    make_order(user, booking_ref="DLV-1", studio_id="S1", qw_company_id="W1")
    make_order(user, content_id="C2", studio_id="S1", qw_company_id="W1")
    make_distributor(user, "S1", "W1", token="tok-1")
    booking_api.statuses["C1"] = [{"dcpDeliveryId": "DLV-1", "status": "completed"}]

    results = poll_content_statuses(db_session, ["C1", "C2"], booking_api.factory)

    assert results["C1"].status_source == "external"
    assert results["C2"].status_source == "local"
    assert ("status", "tok-1", "C1") in booking_api.calls
    assert not any(call[0] == "status" and call[2] == "C2" for call in booking_api.calls)


def test_monitor_refresh_stores_snapshots(engine, db_session, booking_api, make_user, make_order, make_distributor):
    user = make_user("viewer@example.com")
    make_order(user, booking_ref="DLV-1", studio_id="S1", qw_company_id="W1")
    make_distributor(user, "S1", "W1", token="tok-1")
    booking_api.statuses["C1"] = [{"dcpDeliveryId": "DLV-1", "status": "downloading"}]

    monitor = DeliveryStatusMonitor(sessionmaker(bind=engine), booking_api.factory)
    assert monitor.snapshot("C1") is None
    assert monitor.refresh() == 1
    snapshot = monitor.snapshot("C1")
    assert snapshot is not None
    assert snapshot.records[0].status == "downloading"


def test_monitor_start_and_stop(engine, db_session, booking_api):
    monitor = DeliveryStatusMonitor(sessionmaker(bind=engine), booking_api.factory)
    monitor.start(interval_seconds=60)
    assert monitor.is_running
    monitor.stop(timeout=5)
    assert not monitor.is_running
