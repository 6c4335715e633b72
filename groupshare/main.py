"""
Main FastAPI application for the GroupShare API.
Serves health, offers, purchases, payments, payment webhooks, notifications and metrics.
"""
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from groupshare.core.config import settings
from groupshare.core.errors import GroupShareError
from groupshare.core.logging import configure_logging
from groupshare.api.routes import groups, health, notifications, offers, payments, profile, purchases, webhooks
from groupshare.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger("groupshare.http")

app = FastAPI(
    title="GroupShare API",
    description="Marketplace API for sharing subscription slots",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list or ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or str(uuid4())
    request.state.request_id = request_id
    start = time.time()
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round((time.time() - start) * 1000, 1),
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    return response


@app.exception_handler(GroupShareError)
async def groupshare_error_handler(request: Request, exc: GroupShareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "code": "validation_error"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(profile.router)
app.include_router(groups.router)
app.include_router(offers.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(purchases.router)
app.include_router(notifications.router)
app.include_router(metrics_router)
