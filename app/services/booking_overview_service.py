from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from app.crud.cpl_mapping import merged_cpl_ids_by_content
from app.crud.orders import iter_all_orders, list_orders_for_content
from app.models.orders import Order
from app.schemas.bookings import (
    BookingDashboard,
    DeliveryDetails,
    DeliveryRow,
    DeliveryStatusRecord,
)
from app.services.content_aggregator import (
    aggregate_bookings,
    booking_totals,
    group_orders_by_content,
)
from app.services.delivery_status_service import (
    ClientFactory,
    DeliveryStatusMonitor,
    StatusPollResult,
    display_statuses,
    match_status_records,
    poll_content_statuses,
    resolve_display_status,
)

logger = logging.getLogger(__name__)

DEGRADED_STATUS_WARNING = (
    "Live delivery status unavailable; showing locally inferred status."
)


def delivery_type_label(delivery_method: str | None) -> str:
    method = (delivery_method or "").lower()
    if "wiretap" in method:
        return "WireTAP"
    if "drive" in method:
        return "Hard Drive"
    return "Electronic - Partner"


def location_label(order: Order) -> str:
    parts = [order.theatre_city, order.theatre_state, order.theatre_country]
    return ", ".join(p for p in parts if p)


def _matches_query(orders: Sequence[Order], content_id: str, q: str | None) -> bool:
    if not q:
        return True
    needle = q.strip().lower()
    if needle in content_id.lower():
        return True
    return any(needle in (o.content_title or "").lower() for o in orders)


def build_booking_dashboard(
    db: Session,
    *,
    q: str | None = None,
    include_status: bool = False,
    client_factory: ClientFactory | None = None,
    monitor: DeliveryStatusMonitor | None = None,
) -> BookingDashboard:
    """
    Per-content summaries over every order in the store. Status comes from a
    live poll when requested, else from the monitor's last snapshot, else
    from local inference alone.
    """
    groups = {
        content_id: rows
        for content_id, rows in group_orders_by_content(iter_all_orders(db)).items()
        if _matches_query(rows, content_id, q)
    }
    content_ids = sorted(groups.keys())

    poll_results: dict[str, StatusPollResult] = {}
    if include_status and content_ids:
        poll_results = poll_content_statuses(db, content_ids, client_factory)
    elif monitor is not None:
        snapshots = monitor.snapshots()
        poll_results = {cid: snapshots[cid] for cid in content_ids if cid in snapshots}

    statuses: dict[int, str] = {}
    snapshots_by_content: dict[str, list[DeliveryStatusRecord]] = {}
    sources: dict[str, str] = {}
    warnings: list[str] = []
    for content_id, rows in groups.items():
        result = poll_results.get(content_id)
        records = result.records if result else []
        statuses.update(display_statuses(rows, records))
        if result is None:
            continue
        snapshots_by_content[content_id] = records
        sources[content_id] = result.status_source
        if include_status and result.status_source == "local" and any(not o.is_pending for o in rows):
            warnings.append(f"{content_id}: {DEGRADED_STATUS_WARNING}")

    orders = [order for rows in groups.values() for order in rows]
    summaries = aggregate_bookings(
        orders,
        merged_cpl_ids_by_content(db, content_ids),
        statuses=statuses,
        snapshots=snapshots_by_content,
        status_sources=sources,
    )
    return BookingDashboard(items=summaries, totals=booking_totals(summaries), warnings=warnings)


def build_delivery_details(
    db: Session,
    *,
    content_id: str,
    package_uuid: str | None = None,
    client_factory: ClientFactory | None = None,
) -> DeliveryDetails | None:
    orders = list_orders_for_content(db, content_id, package_uuid=package_uuid)
    if not orders:
        return None

    details = DeliveryDetails(
        content_id=content_id,
        content_title=next((o.content_title for o in orders if o.content_title), None),
        film_id=next((o.film_id for o in orders if o.film_id), None),
        package_uuid=package_uuid,
    )

    records: list[DeliveryStatusRecord] = []
    if any(not o.is_pending for o in orders):
        result = poll_content_statuses(db, [content_id], client_factory).get(content_id)
        if result is not None and result.status_source == "external":
            records = result.records
            details.status_source = "external"
        else:
            details.warning = DEGRADED_STATUS_WARNING

    matched = match_status_records(orders, records)
    for order in orders:
        record = matched.get(order.id)
        details.deliveries.append(
            DeliveryRow(
                id=order.id,
                order_ref=order.order_id,
                theatre_id=order.qw_theatre_id or order.theatre_id,
                theatre_name=order.theatre_name,
                location=location_label(order),
                delivery_type=delivery_type_label(order.delivery_method),
                playdate_begin=order.playdate_begin,
                playdate_end=order.playdate_end,
                booking_ref=order.booking_ref,
                booking_created_at=order.booking_created_at,
                status=resolve_display_status(order, record),
                progress=record.progress if record is not None else None,
            )
        )
    return details
