from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import db_operation
from app.core.validations import normalize_equipment_request
from app.facility.crud import config_store
from app.bookings.schemas.pricing import PriceBreakdown, PriceQuoteRequest
from app.bookings.services.pricing_engine import (
    EquipmentSelection,
    PricingSelection,
    quote,
)
from app.bookings.services.time_grid import local_interval


@db_operation
async def quote_price(session: AsyncSession, request: PriceQuoteRequest) -> PriceBreakdown:
    """
    Price a prospective booking against the active rules.
    Nothing is reserved; the same selection booked later is priced again.
    """
    start_at, end_at = local_interval(request.start_at, request.end_at)
    equipment_requested = normalize_equipment_request(request.equipment)

    court = None
    if request.court_id is not None:
        court = await config_store.get_active_court(session, request.court_id)

    coach = None
    if request.coach_id is not None:
        coach = await config_store.get_active_coach(session, request.coach_id)

    equipment_types = await config_store.get_active_equipment_types(
        session, list(equipment_requested)
    )
    rules = await config_store.list_active_pricing_rules(session)

    selection = PricingSelection(
        start_at=start_at,
        end_at=end_at,
        court=court,
        coach=coach,
        equipment=[
            EquipmentSelection(equipment_types[type_id], quantity)
            for type_id, quantity in equipment_requested.items()
        ],
    )
    return quote(selection, rules)
