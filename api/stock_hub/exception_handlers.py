# stock_hub/exception_handlers.py
"""
Exception handlers shared by both apps.

Every failure leaves as ``{"error": code, "message": ..., **details}`` so
the remote client can rebuild the typed error on the other side.
"""
from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stock_hub.context import REQUEST_ID_HEADER
from stock_hub.errors import InvalidArgument, StockHubError

logger = logging.getLogger(__name__)


def error_response(exc: StockHubError, status_code: Optional[int] = None) -> JSONResponse:
    return JSONResponse(
        content=jsonable_encoder(exc.to_payload()),
        status_code=status_code or exc.http_status,
    )


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(StockHubError)
    async def stock_hub_error_handler(request: Request, exc: StockHubError):
        request_id = request.headers.get(REQUEST_ID_HEADER, "-")
        if exc.http_status >= 500:
            logger.error(f"[{request_id}] {request.method} {request.url.path} failed: {exc.code}: {exc.message}")
        else:
            logger.info(f"[{request_id}] {request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        wrapped = InvalidArgument("request validation failed", errors=exc.errors())
        return error_response(wrapped, status_code=422)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return JSONResponse(
            content={"error": "internal_error", "message": str(exc)},
            status_code=500,
        )
