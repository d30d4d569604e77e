from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from clubpay.core.logging import RequestLoggingMiddleware, configure_logging
from clubpay.core.observability import PrometheusMiddleware, metrics_endpoint
from clubpay.core.settings import settings
from clubpay.db.session import engine
from clubpay.modules.router_registry import include_all_routers

configure_logging(level=settings.log_level)

app = FastAPI(title=settings.project_name, version=settings.project_version)

# Always allow localhost during development (Vite often changes ports).
allow_origin_regex = None
if settings.environment != "production":
    allow_origin_regex = r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"
elif any(origin.strip() == "*" for origin in settings.allow_origins):
    raise RuntimeError("ALLOW_ORIGINS cannot include '*' in production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Accept"],
)

# Observability middleware
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# Prometheus metrics endpoint
app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["observability"], include_in_schema=False)

include_all_routers(app)


@app.get("/healthz", tags=["health"])
def healthcheck() -> dict[str, str]:
    """Returns 503 when the database is unreachable."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logging.error("Healthcheck failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=503, detail="Service unavailable") from exc
    return {"status": "ok", "database": "ok"}
