"""FastAPI application factory for the travel payments service"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from travel_payments.api.middleware import RequestIDMiddleware, MetricsMiddleware
from travel_payments.api.v1 import contracts, credits, schedule
from travel_payments.infrastructure.observability.logging import setup_logging
from travel_payments.config import settings

setup_logging(settings.log_level, settings.service_name)


def create_app() -> FastAPI:
    """Build the app: middleware, health and metrics probes, v1 routers"""
    app = FastAPI(
        title="Travel Payments",
        description="Installment schedules, balance reconciliation and prior-trip credits",
        version="0.1.0",
    )

    # Starlette runs the last added middleware first, so request ids exist before metrics
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(schedule.router, prefix="/v1", tags=["schedules"])
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(credits.router, prefix="/v1", tags=["credits"])

    return app


app = create_app()
