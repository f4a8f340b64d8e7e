from fastapi import APIRouter, Depends

from laundry_orders.config import settings
from laundry_orders.deps import get_actor, get_lifecycle
from laundry_orders.lifecycle import OrderLifecycle
from laundry_orders.models import Actor
from laundry_orders.reporting import OrderSummary, summarize, today

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary", response_model=OrderSummary)
async def order_summary(
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """Dashboard counters over the orders the caller can see."""
    orders = await lifecycle.list_orders(actor)
    tz_name = settings.report_timezone
    return summarize(orders, today(tz_name), tz_name)
