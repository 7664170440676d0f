from __future__ import annotations

import logging
from typing import Any

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)

DELIVERY_MODE_AUTO = "auto"


class BookingApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def resolve_base_url(environment: str | None = None) -> str:
    env = (environment or settings.BOOKING_API_ENVIRONMENT or "test").strip().lower()
    if env == "production":
        return (settings.BOOKING_API_PROD_URL or "").rstrip("/")
    return (settings.BOOKING_API_TEST_URL or "").rstrip("/")


def _error_message(response: requests.Response) -> str:
    fallback = f"API request failed with status {response.status_code}"
    text = response.text or ""
    try:
        body = response.json()
    except ValueError:
        return text.strip() or fallback
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or fallback)
    return text.strip() or fallback


class BookingApiClient:
    """
    Thin client for the wire-transfer booking API. Each instance carries the
    personal access token of exactly one distributor.
    """

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        session: Any = None,
    ) -> None:
        self._token = (token or "").strip()
        self._base_url = (base_url if base_url is not None else resolve_base_url()).rstrip("/")
        self._timeout = float(timeout_seconds or settings.BOOKING_API_TIMEOUT_SECONDS)
        self._http = session or requests

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        if not self._token:
            raise BookingApiError(
                "Personal Access Token (PAT) not configured for this distributor."
            )
        if not self._base_url:
            raise BookingApiError("Booking API base URL is not configured.")

        url = f"{self._base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        try:
            response = self._http.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise BookingApiError(
                f"Network error occurred while calling the booking API: {exc}"
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "booking_api_http_error method=%s endpoint=%s status=%s",
                method,
                endpoint,
                response.status_code,
            )
            raise BookingApiError(_error_message(response), status_code=response.status_code)

        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise BookingApiError("Booking API returned invalid JSON.") from exc

    def create_bookings(
        self,
        client_reference_id: str,
        deliveries: list[dict[str, Any]],
    ) -> dict[str, Any]:
        body = self._request(
            "POST",
            "/v1/bookings",
            json={"clientReferenceId": client_reference_id, "dcpDeliveries": deliveries},
        )
        if not isinstance(body, dict):
            raise BookingApiError("Booking API returned a non-object JSON payload.")
        return body

    def get_delivery_statuses(
        self,
        content_id: str,
        package_uuid: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {"content_id": content_id}
        if package_uuid:
            params["package_uuid"] = package_uuid
        body = self._request("GET", "/v1/bookings/dcps", params=params)
        if isinstance(body, dict):
            # {"dcpDeliveries": [...]} or {"items": [...]}
            body = body.get("dcpDeliveries") or body.get("items") or []
        if not isinstance(body, list):
            raise BookingApiError("Booking API returned an unexpected status payload.")
        return [item for item in body if isinstance(item, dict)]

    def test_connection(self) -> dict[str, Any]:
        try:
            self._request("GET", "/health")
        except BookingApiError as exc:
            return {"success": False, "message": exc.message or "Connection failed"}
        return {"success": True, "message": "Connection successful"}


def build_booking_client(token: str | None) -> BookingApiClient:
    return BookingApiClient(token)
