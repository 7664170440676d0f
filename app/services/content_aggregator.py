from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from app.models.orders import Order
from app.schemas.bookings import BookingSummary, BookingTotals, DeliveryStatusRecord

_COMPLETED_STATUSES = {"delivered", "downloaded"}


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    # Half-up rounding; round() would bank 2.5 down to 2.
    return int(part * 100 / whole + 0.5)


def group_orders_by_content(orders: Iterable[Order]) -> dict[str, list[Order]]:
    """
    Groups orders by content id across all owners. Orders without a content
    id cannot be booked and are left out. Each group is sorted by row id so
    the result does not depend on input order.
    """
    groups: dict[str, list[Order]] = {}
    for order in orders:
        content_id = (order.content_id or "").strip()
        if not content_id:
            continue
        groups.setdefault(content_id, []).append(order)
    for rows in groups.values():
        rows.sort(key=lambda o: o.id or 0)
    return groups


def summarize_content(
    content_id: str,
    orders: Sequence[Order],
    cpl_ids: Sequence[str],
    statuses: Mapping[int, str] | None = None,
    snapshot: Sequence[DeliveryStatusRecord] | None = None,
    status_source: str = "local",
) -> BookingSummary:
    statuses = statuses or {}
    counts = {"shipped": 0, "downloading": 0, "completed": 0, "cancelled": 0}
    pending = 0
    updated_on = None
    title = None
    packages: set[str] = set()

    for order in orders:
        if order.is_pending:
            pending += 1
        status = statuses.get(order.id) or ("pending" if order.is_pending else "shipped")
        if status in _COMPLETED_STATUSES:
            counts["completed"] += 1
        elif status in counts:
            counts[status] += 1
        if order.updated_at is not None and (updated_on is None or order.updated_at > updated_on):
            updated_on = order.updated_at
        if title is None and order.content_title:
            title = order.content_title
        if order.package_uuid:
            packages.add(order.package_uuid)

    total = len(orders)
    return BookingSummary(
        content_id=content_id,
        content_title=title,
        package_uuids=sorted(packages),
        cpl_ids=list(cpl_ids),
        has_cpl=bool(cpl_ids),
        booking_count=total,
        pending_bookings=pending,
        shipped=counts["shipped"],
        downloading=counts["downloading"],
        completed=counts["completed"],
        cancelled=counts["cancelled"],
        completion_rate=_percent(counts["completed"], total),
        updated_on=updated_on,
        status_source=status_source,
        status_snapshot=list(snapshot or []),
    )


def aggregate_bookings(
    orders: Iterable[Order],
    cpl_ids_by_content: Mapping[str, Sequence[str]],
    statuses: Mapping[int, str] | None = None,
    snapshots: Mapping[str, Sequence[DeliveryStatusRecord]] | None = None,
    status_sources: Mapping[str, str] | None = None,
) -> list[BookingSummary]:
    """
    Folds the order set into one summary per content id. Pure: the same
    inputs always yield the same summaries, sorted by content id.
    """
    snapshots = snapshots or {}
    status_sources = status_sources or {}
    summaries = []
    for content_id, rows in sorted(group_orders_by_content(orders).items()):
        summaries.append(
            summarize_content(
                content_id,
                rows,
                cpl_ids_by_content.get(content_id, []),
                statuses=statuses,
                snapshot=snapshots.get(content_id),
                status_source=status_sources.get(content_id, "local"),
            )
        )
    return summaries


def booking_totals(summaries: Sequence[BookingSummary]) -> BookingTotals:
    total = sum(s.booking_count for s in summaries)
    completed = sum(s.completed for s in summaries)
    return BookingTotals(
        total_bookings=total,
        total_pending=sum(s.pending_bookings for s in summaries),
        total_completed=completed,
        success_rate=_percent(completed, total),
    )
