"""HTTP client for the Flupp API, used by the tool bridge."""

import logging
from typing import Any

import httpx

from flupp.config import settings

logger = logging.getLogger(__name__)


class FluppApiError(Exception):
    """The Flupp API could not be reached or answered with an error."""

    def __init__(self, status_code: int, detail: str, code: str | None = None):
        self.status_code = status_code
        self.detail = detail
        self.code = code
        super().__init__(f"{status_code}: {detail}")


class FluppClient:
    """Thin async wrapper around the booking and payment endpoints.

    Every call is bounded by ``timeout``; transport failures surface as
    FluppApiError with 504 (timeout) or 502 (anything else).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.flupp_base_url).rstrip("/")
        self.timeout = timeout or settings.flupp_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "FluppClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        try:
            resp = await self._client.request(method, path, json=payload)
        except httpx.TimeoutException:
            logger.warning("Timeout calling Flupp %s %s", method, path)
            raise FluppApiError(504, f"Timeout calling upstream: {path}")
        except httpx.HTTPError as e:
            logger.warning("Error calling Flupp %s %s: %s", method, path, e)
            raise FluppApiError(502, f"Bad gateway calling upstream: {path}")

        if resp.is_error:
            try:
                body = resp.json()
                detail = str(body.get("detail", resp.text))
                code = body.get("code")
            except (ValueError, AttributeError):
                detail, code = resp.text or resp.reason_phrase, None
            raise FluppApiError(resp.status_code, detail, code)

        if resp.content:
            return resp.json()
        return {}

    async def health(self) -> dict:
        return await self._request("GET", "/health")

    async def create_booking(self, booking: dict) -> dict:
        return await self._request("POST", "/api/bookings", booking)

    async def get_booking(self, booking_id: str) -> dict:
        return await self._request("GET", f"/api/bookings/{booking_id}")

    async def create_payment_intent(self, booking_id: str) -> dict:
        return await self._request(
            "POST", "/api/payments/create-intent", {"bookingId": booking_id}
        )
