"""pm_pricing REST endpoints.

POST /pricing/quote   — LMSR YES/NO prices for a share supply
POST /pricing/cost    — cost to buy shares, plus the post-trade quote
POST /pricing/payout  — resolution payout for a position
"""

from fastapi import APIRouter, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_pricing.application.schemas import CostRequest, PayoutRequest, QuoteRequest
from src.pm_pricing.application.service import PricingApplicationService

router = APIRouter(prefix="/pricing", tags=["pricing"])

_service = PricingApplicationService()


def _wrap(request: Request, data: dict) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/quote")
async def quote(body: QuoteRequest, request: Request) -> ApiResponse:
    return _wrap(request, _service.quote(body).model_dump())


@router.post("/cost")
async def cost(body: CostRequest, request: Request) -> ApiResponse:
    return _wrap(request, _service.cost(body).model_dump())


@router.post("/payout")
async def payout(body: PayoutRequest, request: Request) -> ApiResponse:
    return _wrap(request, _service.payout(body).model_dump())
