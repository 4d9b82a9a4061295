import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

from pph21_service.api.rate_limit import increment_rate_limit_exceeded, limiter
from pph21_service.api.routes_auth import router as auth_router
from pph21_service.api.routes_calculator import router as calculator_router
from pph21_service.api.routes_health import router as health_router
from pph21_service.api.routes_master_data import router as master_data_router
from pph21_service.api.routes_metrics import router as metrics_router
from pph21_service.api.routes_payroll import router as payroll_router
from pph21_service.api.routes_periods import router as periods_router
from pph21_service.api.routes_tenants import router as tenants_router
from pph21_service.core.config import settings
from pph21_service.core.errors import register_error_handlers
from pph21_service.core.logger import init_logging
from pph21_service.core.monitoring import init_monitoring

access_logger = logging.getLogger("pph21_service.access")


def _error_body(message: str, code: str, **details) -> dict:
    return {"error": {"message": message, "code": code, "details": details}}


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    increment_rate_limit_exceeded()
    return JSONResponse(
        status_code=429,
        content=_error_body("Too many requests", "RATE_LIMITED", limit=str(exc.detail)),
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and write one access log line for it."""

    async def dispatch(self, request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        access_logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={"request_id": request_id, "tenant_header": request.headers.get("X-Tenant-ID")},
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.headers = {
            "Strict-Transport-Security": f"max-age={settings.HSTS_SECONDS}; includeSubDomains",
            "Referrer-Policy": "no-referrer",
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Content-Security-Policy": settings.CONTENT_SECURITY_POLICY,
            # payslips and tax figures must not sit in shared caches
            "Cache-Control": "no-store",
        }

    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_body: int | None = None) -> None:
        super().__init__(app)
        self.max_body = max_body or settings.MAX_REQUEST_BYTES

    async def dispatch(self, request, call_next):  # type: ignore[override]
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_body:
            access_logger.warning("Rejected %s %s: body of %s bytes", request.method, request.url.path, declared)
            return JSONResponse(
                status_code=413,
                content=_error_body("Request body too large", "REQUEST_TOO_LARGE", max_bytes=self.max_body),
            )
        return await call_next(request)


def create_app() -> FastAPI:
    init_logging()
    init_monitoring()

    expose_docs = settings.ENV.lower() not in ("prod", "production")
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant payroll with PPh21 withholding",
        docs_url="/docs" if expose_docs else None,
        redoc_url="/redoc" if expose_docs else None,
        openapi_url="/openapi.json" if expose_docs else None,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    register_error_handlers(app)

    # last added runs first
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(tenants_router, prefix="/tenants", tags=["tenants"])
    app.include_router(master_data_router)
    app.include_router(periods_router, prefix="/periods", tags=["periods"])
    app.include_router(payroll_router, tags=["payroll"])
    app.include_router(calculator_router, prefix="/calculator", tags=["calculator"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)
    return app


app = create_app()
