import json
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


def _access_line(request: Request, request_id: str, status: int, duration_ms: float) -> str:
    return json.dumps(
        {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "slug": getattr(request.state, "booking_slug", None),
        },
        ensure_ascii=False,
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            print(_access_line(request, request_id, 500, (time.perf_counter() - start) * 1000))
            raise

        response.headers["X-Request-Id"] = request_id
        print(_access_line(request, request_id, response.status_code, (time.perf_counter() - start) * 1000))
        return response
