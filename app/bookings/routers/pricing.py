from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.limits import limiter
from app.bookings.crud.quotes import quote_price
from app.bookings.schemas.pricing import PriceQuoteRequest, PriceQuoteResponse

router = APIRouter(prefix="/price-quote", tags=["Pricing"])


@router.post("", response_model=PriceQuoteResponse)
@limiter.limit("60/minute")
async def create_price_quote(
    request: Request,
    quote_request: PriceQuoteRequest,
    db: AsyncSession = Depends(get_session),
):
    """Itemized price for a selection; nothing is reserved"""
    breakdown = await quote_price(db, quote_request)
    return PriceQuoteResponse(price_breakdown=breakdown)
