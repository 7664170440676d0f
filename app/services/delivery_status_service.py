from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.flow_logging import flow_info
from app.crud.orders import list_booked_content_ids, list_orders_for_content
from app.models.orders import Order
from app.schemas.bookings import DeliveryStatusRecord
from app.services.booking_api_client import BookingApiClient, BookingApiError, build_booking_client
from app.services.distributor_resolver import credentials_for_orders

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BookingApiClient]

# External vocabulary -> display vocabulary. "completed" is refined by
# delivery type in map_external_status.
_EXTERNAL_TO_DISPLAY = {
    "pending": "pending",
    "shipped": "shipped",
    "downloading": "downloading",
    "completed": "downloaded",
    "cancelled": "cancelled",
    "failed": "cancelled",
}

_PHYSICAL_DELIVERY_MARKERS = ("drive", "physical", "courier")


def map_external_status(status: str | None, delivery_type: str | None = None) -> str | None:
    """
    Returns the display status for an external status, or None when the
    external value is unknown. Completed physical deliveries display as
    "delivered"; completed electronic ones as "downloaded".
    """
    normalized = (status or "").strip().lower()
    display = _EXTERNAL_TO_DISPLAY.get(normalized)
    if display == "downloaded":
        kind = (delivery_type or "").lower()
        if any(marker in kind for marker in _PHYSICAL_DELIVERY_MARKERS):
            return "delivered"
    return display


def resolve_display_status(order: Order, record: DeliveryStatusRecord | None) -> str:
    """
    An order without a booking reference is always pending. A booked order
    with no matching external record is assumed shipped; this is a heuristic,
    not a confirmed state.
    """
    if order.is_pending:
        return "pending"
    if record is None:
        return "shipped"
    return map_external_status(record.status, record.delivery_type) or "shipped"


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def match_status_records(
    orders: Sequence[Order],
    records: Sequence[DeliveryStatusRecord],
) -> dict[int, DeliveryStatusRecord | None]:
    """
    Pairs each order with an external record by delivery reference, then
    theatre id, then theatre name.
    """
    by_delivery: dict[str, DeliveryStatusRecord] = {}
    by_theatre_id: dict[str, DeliveryStatusRecord] = {}
    by_theatre_name: dict[str, DeliveryStatusRecord] = {}
    for record in records:
        if record.delivery_id:
            by_delivery.setdefault(_norm(record.delivery_id), record)
        if record.theatre_id:
            by_theatre_id.setdefault(_norm(record.theatre_id), record)
        if record.theatre_name:
            by_theatre_name.setdefault(_norm(record.theatre_name), record)

    matched: dict[int, DeliveryStatusRecord | None] = {}
    for order in orders:
        record = None
        if order.booking_ref:
            record = by_delivery.get(_norm(order.booking_ref))
        if record is None:
            for theatre_id in (order.qw_theatre_id, order.theatre_id):
                if theatre_id and _norm(theatre_id) in by_theatre_id:
                    record = by_theatre_id[_norm(theatre_id)]
                    break
        if record is None:
            for theatre_name in (order.qw_theatre_name, order.theatre_name):
                if theatre_name and _norm(theatre_name) in by_theatre_name:
                    record = by_theatre_name[_norm(theatre_name)]
                    break
        matched[order.id] = record
    return matched


def display_statuses(
    orders: Sequence[Order],
    records: Sequence[DeliveryStatusRecord] | None,
) -> dict[int, str]:
    matched = match_status_records(orders, records or [])
    return {order.id: resolve_display_status(order, matched.get(order.id)) for order in orders}


def parse_status_records(payload: Iterable[dict]) -> list[DeliveryStatusRecord]:
    records: list[DeliveryStatusRecord] = []
    for item in payload:
        try:
            records.append(DeliveryStatusRecord.model_validate(item))
        except ValidationError as exc:
            logger.warning("delivery_status_record_invalid error=%s", exc.errors()[:1])
    return records


@dataclass
class StatusPollResult:
    content_id: str
    records: list[DeliveryStatusRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    succeeded: int = 0

    @property
    def status_source(self) -> str:
        return "external" if self.succeeded > 0 else "local"


def plan_status_requests(
    db: Session,
    content_ids: Iterable[str],
) -> dict[str, list[tuple[str, str]]]:
    """
    For each content id, the (distributor label, token) pairs to poll with.
    Runs on the caller's session so the worker threads never touch the DB.
    """
    plan: dict[str, list[tuple[str, str]]] = {}
    for content_id in dict.fromkeys(content_ids):
        booked = [o for o in list_orders_for_content(db, content_id) if not o.is_pending]
        plan[content_id] = credentials_for_orders(db, booked) if booked else []
    return plan


def fetch_content_statuses(
    content_id: str,
    credentials: Sequence[tuple[str, str]],
    client_factory: ClientFactory = build_booking_client,
) -> StatusPollResult:
    result = StatusPollResult(content_id=content_id)
    for label, token in credentials:
        try:
            payload = client_factory(token).get_delivery_statuses(content_id)
        except BookingApiError as exc:
            logger.warning(
                "delivery_status_poll_failed content_id=%s distributor=%s error=%s",
                content_id,
                label,
                exc.message,
            )
            result.errors.append(f"{label}: {exc.message}")
            continue
        result.records.extend(parse_status_records(payload))
        result.succeeded += 1
    if not credentials:
        result.errors.append("no distributor credential available for polling")
    flow_info(
        logger,
        "delivery_status_polled content_id=%s records=%s errors=%s",
        content_id,
        len(result.records),
        len(result.errors),
        category="status",
    )
    return result


def poll_status_plan(
    plan: dict[str, list[tuple[str, str]]],
    client_factory: ClientFactory | None = None,
    max_workers: int | None = None,
) -> dict[str, StatusPollResult]:
    """
    Polls every content id concurrently and returns once all requests have
    settled. A failing content id degrades to an empty local-only result.
    """
    if not plan:
        return {}
    factory = client_factory or build_booking_client
    workers = max(1, min(int(max_workers or settings.STATUS_POLL_MAX_WORKERS), len(plan)))
    results: dict[str, StatusPollResult] = {}
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(fetch_content_statuses, content_id, credentials, factory): content_id
            for content_id, credentials in plan.items()
        }
        for future in as_completed(futures):
            content_id = futures[future]
            try:
                results[content_id] = future.result()
            except Exception as exc:
                logger.exception("delivery_status_poll_crashed content_id=%s", content_id)
                results[content_id] = StatusPollResult(content_id=content_id, errors=[str(exc)])
    return results


def poll_content_statuses(
    db: Session,
    content_ids: Iterable[str],
    client_factory: ClientFactory | None = None,
) -> dict[str, StatusPollResult]:
    return poll_status_plan(plan_status_requests(db, content_ids), client_factory)


class DeliveryStatusMonitor:
    """
    Holds the latest status snapshot per content id. A single periodic
    refresh task can be started and stopped with the application lifespan.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        client_factory: ClientFactory = build_booking_client,
    ) -> None:
        self._session_factory = session_factory
        self._client_factory = client_factory
        self._lock = threading.Lock()
        self._snapshots: dict[str, StatusPollResult] = {}
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def snapshot(self, content_id: str) -> StatusPollResult | None:
        with self._lock:
            return self._snapshots.get(content_id)

    def snapshots(self) -> dict[str, StatusPollResult]:
        with self._lock:
            return dict(self._snapshots)

    def refresh(self) -> int:
        db = self._session_factory()
        try:
            plan = plan_status_requests(db, list_booked_content_ids(db))
        finally:
            db.close()
        results = poll_status_plan(plan, self._client_factory)
        with self._lock:
            self._snapshots.update(results)
        return len(results)

    def _run(self, interval_seconds: float) -> None:
        while not self._stop_event.is_set():
            try:
                refreshed = self.refresh()
                flow_info(logger, "delivery_status_refreshed contents=%s", refreshed, category="status")
            except Exception:
                logger.exception("delivery_status_refresh_failed")
            self._stop_event.wait(interval_seconds)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_seconds: float | None = None) -> None:
        if self.is_running:
            return
        interval = max(5.0, float(interval_seconds or settings.STATUS_POLL_INTERVAL_SECONDS))
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval,),
            name="delivery-status-monitor",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None
