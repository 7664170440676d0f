from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any
from uuid import uuid4

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.flow_logging import flow_info
from app.crud.cpl_mapping import merged_cpl_ids_by_content
from app.crud.orders import list_orders_for_content, set_booking_reference
from app.models.orders import Order
from app.schemas.bookings import SkippedOrder, SubmitReport
from app.services.booking_api_client import (
    DELIVERY_MODE_AUTO,
    BookingApiClient,
    BookingApiError,
    build_booking_client,
)
from app.services.distributor_resolver import (
    DistributorPartition,
    partition_pending_orders,
    resolve_partitions,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BookingApiClient]


def target_theatre_id(order: Order) -> str | None:
    return order.qw_theatre_id or order.theatre_id


def build_delivery(order: Order, cpl_ids: Sequence[str]) -> dict[str, Any]:
    title = order.content_title or order.content_id or ""
    return {
        "theatreId": target_theatre_id(order),
        "cplIds": list(cpl_ids),
        "deliverBefore": order.playdate_end.isoformat() if order.playdate_end else None,
        "deliveryMode": DELIVERY_MODE_AUTO,
        "statusEmails": [order.booker_email] if order.booker_email else [],
        "notes": order.note or f"{title} booking for {order.theatre_name or 'theatre'}",
    }


def build_booking_request(
    content_id: str,
    orders: Sequence[Order],
    cpl_ids: Sequence[str],
) -> dict[str, Any]:
    return {
        "clientReferenceId": f"{content_id}-{uuid4().hex[:12]}",
        "dcpDeliveries": [build_delivery(order, cpl_ids) for order in orders],
    }


def pair_deliveries(
    orders: Sequence[Order],
    deliveries: Sequence[dict[str, Any]],
) -> list[tuple[Order, str]]:
    """
    Matches returned deliveries to source orders: by echoed theatreId first,
    then by position, then the first unmatched order. Entries without a
    dcpDeliveryId are dropped.
    """
    by_theatre: dict[str, deque[Order]] = {}
    for order in orders:
        by_theatre.setdefault(target_theatre_id(order) or "", deque()).append(order)

    assigned: set[int] = set()
    pairs: list[tuple[Order, str]] = []
    for idx, item in enumerate(deliveries):
        delivery_id = str(item.get("dcpDeliveryId") or "").strip()
        if not delivery_id:
            continue
        order = None
        queue = by_theatre.get(str(item.get("theatreId") or ""))
        while queue:
            candidate = queue.popleft()
            if id(candidate) not in assigned:
                order = candidate
                break
        if order is None and idx < len(orders) and id(orders[idx]) not in assigned:
            order = orders[idx]
        if order is None:
            order = next((o for o in orders if id(o) not in assigned), None)
        if order is None:
            continue
        assigned.add(id(order))
        pairs.append((order, delivery_id))
    return pairs


def _submit_partition(
    db: Session,
    content_id: str,
    partition: DistributorPartition,
    cpl_ids: Sequence[str],
    client_factory: ClientFactory,
) -> tuple[int, str | None, list[Order]]:
    """Returns (written booking count, failure reason or None, orders the response did not cover)."""
    request = build_booking_request(content_id, partition.orders, cpl_ids)
    try:
        client = client_factory(partition.token or "")
        response = client.create_bookings(request["clientReferenceId"], request["dcpDeliveries"])
    except BookingApiError as exc:
        return 0, exc.message, []

    pairs = pair_deliveries(partition.orders, response.get("dcpDeliveries") or [])
    if not pairs:
        return 0, "booking API returned no delivery identifiers", []

    paired_ids = {id(order) for order, _ in pairs}
    unpaired = [order for order in partition.orders if id(order) not in paired_ids]

    written = 0
    booked_at = datetime.utcnow()
    for order, delivery_id in pairs:
        try:
            if set_booking_reference(db, order.id, delivery_id, booked_at):
                written += 1
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "booking_write_back_failed content_id=%s order_id=%s written=%s error=%s",
                content_id,
                order.id,
                written,
                exc,
            )
            return written, "booking references could not be saved", unpaired
    return written, None, unpaired


def submit_content_bookings(
    db: Session,
    *,
    content_id: str,
    client_factory: ClientFactory = build_booking_client,
) -> SubmitReport:
    """
    Submits every pending order of a content id, one API call per distributor.
    Failures are isolated per distributor and successful groups are kept.
    """
    orders = list_orders_for_content(db, content_id)
    if not orders:
        raise HTTPException(status_code=404, detail=f"No orders found for content '{content_id}'")

    pending = [order for order in orders if order.is_pending]
    if not pending:
        return SubmitReport(
            content_id=content_id,
            outcome="noop",
            message="No pending orders to submit.",
        )

    partitions, skipped = partition_pending_orders(pending)
    report = SubmitReport(content_id=content_id, outcome="failed")
    for order in skipped:
        report.skipped_orders.append(
            SkippedOrder(
                order_id=order.id,
                order_ref=order.order_id,
                theatre_name=order.theatre_name,
                reason="missing studio_id or qw_company_id",
            )
        )
    if skipped:
        report.warnings.append(
            f"{len(skipped)} order(s) skipped: missing studio_id or qw_company_id."
        )
        logger.warning(
            "booking_orders_skipped content_id=%s order_ids=%s",
            content_id,
            [o.id for o in skipped],
        )

    cpl_ids = merged_cpl_ids_by_content(db, [content_id]).get(content_id, [])
    if not cpl_ids:
        report.warnings.append("No CPL identifiers are mapped for this content.")

    for partition in resolve_partitions(db, partitions):
        if not partition.is_ready:
            report.failed_distributors.append(partition.label)
            continue
        written, failure, unpaired = _submit_partition(db, content_id, partition, cpl_ids, client_factory)
        report.created_count += written
        if unpaired:
            report.warnings.append(
                f"{len(unpaired)} order(s) for {partition.label} got no delivery identifier "
                f"and remain pending: {', '.join(str(o.id) for o in unpaired)}."
            )
            logger.warning(
                "booking_orders_unpaired content_id=%s distributor=%s order_ids=%s",
                content_id,
                partition.label,
                [o.id for o in unpaired],
            )
            failure = failure or "booking API returned fewer delivery identifiers than orders"
        if failure:
            logger.warning(
                "booking_distributor_failed content_id=%s distributor=%s reason=%s",
                content_id,
                partition.label,
                failure,
            )
            report.failed_distributors.append(partition.label)
        else:
            flow_info(
                logger,
                "booking_distributor_submitted content_id=%s distributor=%s created=%s",
                content_id,
                partition.label,
                written,
                category="booking",
            )

    if report.created_count and not report.failed_distributors:
        report.outcome = "submitted"
    elif report.created_count:
        report.outcome = "partial"

    parts = [f"Created {report.created_count} booking(s)."]
    if report.failed_distributors:
        parts.append(f"Failed for: {', '.join(report.failed_distributors)}.")
    if not partitions and skipped:
        parts.append("No pending order has a complete distributor identity.")
    report.message = " ".join(parts)
    return report
