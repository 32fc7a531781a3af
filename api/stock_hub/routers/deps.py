# stock_hub/routers/deps.py
"""Business tier dependencies: the shared facade and the per-request CallContext."""
from __future__ import annotations
from typing import Any, Optional

from fastapi import Depends, Request, Response

from stock_hub.clients.resilient import Degradable, ResilientCatalogFacade
from stock_hub.context import REQUEST_ID_HEADER, CallContext
from stock_hub.models import Envelope
from stock_hub.services.product_business import ProductBusinessService
from stock_hub.services.report_business import ReportBusinessService
from stock_hub.settings import settings


def get_facade(request: Request) -> ResilientCatalogFacade:
    return request.app.state.facade


def get_call_context(request: Request) -> CallContext:
    return CallContext.start(
        request_id=request.headers.get(REQUEST_ID_HEADER),
        budget_seconds=settings.REQUEST_DEADLINE_SECONDS,
    )


def get_products(facade: ResilientCatalogFacade = Depends(get_facade)) -> ProductBusinessService:
    return ProductBusinessService(facade)


def get_reports(facade: ResilientCatalogFacade = Depends(get_facade)) -> ReportBusinessService:
    return ReportBusinessService(facade)


def envelope(result: Degradable, ctx: CallContext) -> Envelope:
    return Envelope(data=result.value, degraded=result.degraded, request_id=ctx.request_id)


def write_envelope(result: Degradable, ctx: CallContext, response: Response,
                   status_code: Optional[int] = None) -> Envelope[Any]:
    """Degraded writes were not applied: 503 with an empty envelope."""
    if result.degraded:
        response.status_code = 503
    elif status_code is not None:
        response.status_code = status_code
    return envelope(result, ctx)
