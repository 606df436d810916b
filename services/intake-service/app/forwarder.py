from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from shared.events import canonical_json
from shared.signing import sign

from .log import log
from .models import EnrichedBooking


class SinkError(Exception):
    pass


class SinkTransportError(SinkError):
    """The sink could not be reached or timed out."""


class SinkRejectedError(SinkError):
    """The sink answered, but not with a success acknowledgment."""

    def __init__(self, message: str, status_code: int, body_snippet: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


@dataclass(frozen=True)
class SinkAck:
    status_code: int
    body: dict[str, Any]


def default_partition_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"Bookings {now.strftime('%Y-%m')}"


class SinkForwarder:
    def __init__(self, timeout_seconds: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def forward(self, enriched: EnrichedBooking, endpoint: str, secret: str, partition: str) -> SinkAck:
        if not endpoint:
            raise SinkTransportError("Booking webhook not configured")

        payload = enriched.to_payload()
        body = canonical_json(payload).encode("utf-8")
        signature = sign(payload, secret)

        # the sink may not see custom headers, so routing data travels in the query too
        params = {"sig": signature, "partition": partition}
        headers = {
            "Content-Type": "application/json",
            "X-Signature": signature,
            "X-Partition-Name": partition,
            "X-Request-Id": enriched.request_id,
        }

        try:
            # keep any query parameters the endpoint already carries
            url = httpx.URL(endpoint).copy_merge_params(params)
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                resp = await client.post(url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            raise SinkTransportError(f"Timeout calling booking sink: {e}") from e
        except httpx.InvalidURL as e:
            raise SinkTransportError(f"Booking sink URL is invalid: {e}") from e
        except httpx.HTTPError as e:
            raise SinkTransportError(f"Booking sink unreachable: {e}") from e

        snippet = (resp.text or "")[:500]
        if not resp.is_success:
            log(f"booking sink status={resp.status_code} body={snippet!r}")
            raise SinkRejectedError("Booking sink returned an error status", resp.status_code, snippet)

        try:
            result = resp.json()
        except ValueError:
            result = None

        if not isinstance(result, dict) or result.get("success") is not True:
            log(f"booking sink did not acknowledge: status={resp.status_code} body={snippet!r}")
            raise SinkRejectedError("Booking sink did not return success", resp.status_code, snippet)

        log(f"booking {enriched.booking_id} forwarded for {enriched.slug}")
        return SinkAck(status_code=resp.status_code, body=result)
