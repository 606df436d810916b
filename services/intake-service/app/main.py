from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.kv_store import KeyValueStore

from .config import SERVICE_NAME, Settings, cors_origins_from_env
from .errors import IntakeError
from .middleware import RequestLoggingMiddleware
from .routes import router

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Bookings", "description": "Booking enquiry intake from property websites."},
]


async def intake_error_handler(request: Request, exc: IntakeError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = FastAPI(title="Booking Intake Service", openapi_tags=OPENAPI_TAGS)
    app.state.settings = settings
    app.state.store = store
    app.state.transport = transport
    app.state.pipeline = None

    origins = settings.cors_allow_origins if settings else cors_origins_from_env()
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
    )
    app.add_exception_handler(IntakeError, intake_error_handler)
    app.include_router(router)

    @app.get("/health", tags=["System"])
    async def health():
        return {"status": "ok", "service": SERVICE_NAME}

    @app.on_event("shutdown")
    async def shutdown():
        store = app.state.store
        try:
            if store is not None and hasattr(store, "close"):
                await store.close()
        except Exception as e:
            print(f"[{SERVICE_NAME}] store close failed: {e}")

    return app


app = create_app()
