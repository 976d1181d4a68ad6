from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from salerecords.api.routes_order_events import router as order_events_router
from salerecords.api.routes_sale_record_logs import router as sale_record_logs_router
from salerecords.api.routes_sale_records import router as sale_records_router
from salerecords.clients.lookups import build_lookups
from salerecords.core.config import get_settings
from salerecords.core.logging import configure_logging
from salerecords.domain.errors import SaleRecordError
from salerecords.events.publisher import build_publishers
from salerecords.persistence.pg import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    app.state.lookups = build_lookups(settings)
    app.state.publishers = build_publishers(settings).open()
    logger.info("sale record api ready: broker=%s env=%s", settings.broker_backend, settings.env)


@app.on_event("shutdown")
def on_shutdown() -> None:
    publishers = getattr(app.state, "publishers", None)
    if publishers is not None:
        publishers.close()
        logger.info("publishers drained: %s", publishers.stats())


@app.exception_handler(SaleRecordError)
async def sale_record_error_handler(_: Request, exc: SaleRecordError):
    return JSONResponse(
        status_code=400,
        content={"error": exc.tag, "message": exc.message, "detail": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Parameter", "message": "invalid request", "detail": jsonable_encoder(exc.errors())},
    )


@app.get("/healthz")
def healthz() -> dict:
    publishers = getattr(app.state, "publishers", None)
    return {
        "status": "ok",
        "publish": publishers.stats() if publishers is not None else None,
    }


app.include_router(sale_records_router)
app.include_router(order_events_router)
app.include_router(sale_record_logs_router)
