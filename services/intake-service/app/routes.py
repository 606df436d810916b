import json

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import ValidationError as SchemaError

from .deps import get_pipeline
from .enrichment import Provenance
from .errors import IntakeError, ProcessingError, ValidationError
from .log import log
from .pipeline import BookingPipeline
from .schemas import BookingAccepted, BookingRequest, ErrorResponse

router = APIRouter()

ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (400, 403, 404, 409, 429, 500, 501)
}


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("CF-Connecting-IP") or request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _parse_booking(request: Request) -> BookingRequest:
    try:
        body = json.loads(await request.body() or b"null")
    except ValueError:
        raise ValidationError("Invalid JSON body", field="body")
    if not isinstance(body, dict):
        raise ValidationError("Booking details are required", field="body")

    try:
        return BookingRequest.model_validate(body)
    except SchemaError as e:
        errors = e.errors()
        field = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else "body"
        raise ValidationError(f"Invalid value for {field}", field=field)


@router.post("/bookings", response_model=BookingAccepted, responses=ERROR_RESPONSES, tags=["Bookings"])
@router.post("/api/booking", response_model=BookingAccepted, responses=ERROR_RESPONSES, include_in_schema=False)
async def create_booking(
    request: Request,
    background_tasks: BackgroundTasks,
    pipeline: BookingPipeline = Depends(get_pipeline),
):
    booking = await _parse_booking(request)
    request.state.booking_slug = booking.slug

    provenance = Provenance(
        source_ip=_client_ip(request),
        user_agent=request.headers.get("User-Agent") or "unknown",
        request_id=getattr(request.state, "request_id", None) or "unknown",
    )

    try:
        result = await pipeline.submit(booking, provenance)
    except IntakeError:
        raise
    except Exception as e:
        log(f"booking processing error: {e}")
        raise ProcessingError() from e

    if result.notify is not None:
        # runs after the response is sent
        background_tasks.add_task(result.notify)
    return result.response
