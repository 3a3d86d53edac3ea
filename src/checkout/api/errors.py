"""HTTP mapping for checkout rejections.

Protean's own handlers (``register_exception_handlers``) cover
``ValidationError`` and ``ObjectNotFoundError``; these cover the outcomes
specific to settlement.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout.settlement.errors import DiscountNotApplicable, SettlementFailed, UsageRaceLost

logger = structlog.get_logger(__name__)


async def discount_not_applicable_handler(request: Request, exc: DiscountNotApplicable) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": str(exc), "reason": exc.reason, "code": exc.code},
    )


async def usage_race_lost_handler(request: Request, exc: UsageRaceLost) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": str(exc), "reason": exc.reason},
    )


async def settlement_failed_handler(request: Request, exc: SettlementFailed) -> JSONResponse:
    logger.error("settlement_failed_response", cart_id=exc.cart_id, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": f"Settlement of cart {exc.cart_id} failed", "reason": "settlement_failed"},
    )


def register_checkout_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DiscountNotApplicable, discount_not_applicable_handler)
    app.add_exception_handler(UsageRaceLost, usage_race_lost_handler)
    app.add_exception_handler(SettlementFailed, settlement_failed_handler)
