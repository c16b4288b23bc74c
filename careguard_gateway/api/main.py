"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from careguard_gateway.api.dependencies import get_request_id, get_scoring_policy
from careguard_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from careguard_gateway.api.v1 import alerts, patients, transactions
from careguard_gateway.config import settings
from careguard_gateway.domain.exceptions import InvalidTransactionDataError, PatientNotFoundError
from careguard_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


async def patient_not_found_handler(request: Request, exc: PatientNotFoundError) -> JSONResponse:
    logging.warning(str(exc), extra={"request_id": get_request_id(request), "patient_id": exc.patient_id})
    return JSONResponse(status_code=404, content={"detail": "Patient not found"})


async def invalid_transaction_handler(request: Request, exc: InvalidTransactionDataError) -> JSONResponse:
    logging.warning(f"Invalid transaction: {exc}", extra={"request_id": get_request_id(request)})
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    # An invalid SCORING_POLICY_FILE or SCORING_TIMEZONE fails here rather than on the first ingestion
    get_scoring_policy()

    app = FastAPI(
        title="CareGuard Gateway",
        description="Transaction anomaly scoring and caregiver alerting for people living with dementia",
        version="0.1.0",
    )

    # Request IDs must exist before metrics and handlers run, so it is added last
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(PatientNotFoundError, patient_not_found_handler)
    app.add_exception_handler(InvalidTransactionDataError, invalid_transaction_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in ((patients.router, "patients"), (transactions.router, "transactions"), (alerts.router, "alerts")):
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
