"""
CYCLES Router - Pay cycles, split periods and allocations
Handles cycle CRUD, the period rollover view and per-allocation usage
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Annotated, Optional
import datetime
import logging

import config
import cycle_service
from cycle_details import get_cycle_with_periods
from dependencies import get_current_user, get_store, limiter
from errors import BudgetError
from models import (
    AllocationCreate,
    AllocationUpdate,
    CycleCreate,
    CycleUpdate,
    CycleWithPeriodsCreate,
    IncomeUpdate,
    SpendingUpdate,
    TotalPayUpdate,
)
from store import SupabaseStore

logger = logging.getLogger(__name__)

CurrentUser = Annotated[str, Depends(get_current_user)]
Store = Annotated[SupabaseStore, Depends(get_store)]

# Router configuration
router = APIRouter(
    prefix="/cycles",
    tags=["Cycles - Period Budgeting"],
    responses={401: {"description": "Unauthorized"}}
)


# ============================================================================
# CYCLES
# ============================================================================

@router.post("")
@limiter.limit("10/minute")
async def create_cycle(
    request: Request,
    body: CycleCreate,
    user_id: CurrentUser,
    store: Store
):
    """Create a single-period cycle. Any previously active cycle is deactivated."""
    try:
        return cycle_service.create_cycle(store, user_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("create_cycle failed")
        raise HTTPException(status_code=500, detail="Failed to create cycle")


@router.post("/with-periods")
@limiter.limit("10/minute")
async def create_cycle_with_periods(
    request: Request,
    body: CycleWithPeriodsCreate,
    user_id: CurrentUser,
    store: Store
):
    """
    Create a cycle split into two periods.
    Period 1 budget = sum of its allocations, period 2 budget = the rest of total_pay.
    """
    try:
        return cycle_service.create_cycle_with_periods(store, user_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("create_cycle_with_periods failed")
        raise HTTPException(status_code=500, detail="Failed to create cycle")


@router.get("/default-periods")
async def get_default_periods(
    user_id: CurrentUser,
    start: Optional[datetime.date] = None
):
    """Suggested two-period split. Defaults to this month's payday."""
    if start is None:
        start = datetime.date.today().replace(day=config.DEFAULT_PAYDAY)
    return cycle_service.suggest_periods(start)


@router.get("")
async def get_cycles(
    user_id: CurrentUser,
    store: Store
):
    """List all of the user's cycles, newest first."""
    try:
        return cycle_service.list_cycles(store, user_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_cycles failed")
        raise HTTPException(status_code=500, detail="Failed to load cycles")


@router.get("/active")
async def get_active_cycle(
    user_id: CurrentUser,
    store: Store
):
    """The user's active cycle, or null."""
    try:
        return cycle_service.get_active_cycle(store, user_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_active_cycle failed")
        raise HTTPException(status_code=500, detail="Failed to load active cycle")


# ============================================================================
# PERIODS & ALLOCATIONS
# ============================================================================

@router.put("/allocations/{allocation_id}")
@limiter.limit("30/minute")
async def update_allocation(
    request: Request,
    allocation_id: str,
    body: AllocationUpdate,
    user_id: CurrentUser,
    store: Store
):
    """Rename an allocation or change its amount. Period budgets are left as they are."""
    try:
        return cycle_service.update_allocation(store, user_id, allocation_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("update_allocation failed")
        raise HTTPException(status_code=500, detail="Failed to update allocation")


@router.put("/allocations/{allocation_id}/spent")
@limiter.limit("30/minute")
async def update_period_spending(
    request: Request,
    allocation_id: str,
    body: SpendingUpdate,
    user_id: CurrentUser,
    store: Store
):
    """Record a manual actual-spent figure. Rollover figures still come from transactions."""
    try:
        return cycle_service.update_period_spending(store, user_id, allocation_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("update_period_spending failed")
        raise HTTPException(status_code=500, detail="Failed to update spending")


@router.put("/periods/{period_id}/income")
@limiter.limit("30/minute")
async def set_period_income(
    request: Request,
    period_id: str,
    body: IncomeUpdate,
    user_id: CurrentUser,
    store: Store
):
    """Set (or clear with null) the actual income received for a period."""
    try:
        return cycle_service.set_period_income(store, user_id, period_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("set_period_income failed")
        raise HTTPException(status_code=500, detail="Failed to update period income")


# ============================================================================
# SINGLE CYCLE
# ============================================================================

@router.get("/{cycle_id}")
async def get_cycle(
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """Get a single cycle."""
    try:
        return cycle_service.get_cycle(store, user_id, cycle_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_cycle failed")
        raise HTTPException(status_code=500, detail="Failed to load cycle")


@router.get("/{cycle_id}/details")
async def get_cycle_details(
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """Cycle with its periods, each carrying available/remaining budget and carry-over."""
    try:
        return get_cycle_with_periods(store, user_id, cycle_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_cycle_details failed")
        raise HTTPException(status_code=500, detail="Failed to load cycle details")


@router.get("/{cycle_id}/summary")
async def get_cycle_summary(
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """Totals for the cycle and how much of each allocation has been used."""
    try:
        return cycle_service.get_cycle_summary(store, user_id, cycle_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_cycle_summary failed")
        raise HTTPException(status_code=500, detail="Failed to load cycle summary")


@router.get("/{cycle_id}/allocations")
async def get_cycle_allocations(
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """All allocations of the cycle, including inactive ones."""
    try:
        return cycle_service.get_cycle_allocations(store, user_id, cycle_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("get_cycle_allocations failed")
        raise HTTPException(status_code=500, detail="Failed to load allocations")


@router.post("/{cycle_id}/allocations")
@limiter.limit("30/minute")
async def add_allocation(
    request: Request,
    cycle_id: str,
    body: AllocationCreate,
    user_id: CurrentUser,
    store: Store
):
    """Add an allocation to one of the cycle's periods."""
    try:
        return cycle_service.add_allocation(store, user_id, cycle_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("add_allocation failed")
        raise HTTPException(status_code=500, detail="Failed to add allocation")


@router.put("/{cycle_id}")
@limiter.limit("30/minute")
async def update_cycle(
    request: Request,
    cycle_id: str,
    body: CycleUpdate,
    user_id: CurrentUser,
    store: Store
):
    """Update name, dates or total pay."""
    try:
        return cycle_service.update_cycle(store, user_id, cycle_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("update_cycle failed")
        raise HTTPException(status_code=500, detail="Failed to update cycle")


@router.put("/{cycle_id}/total-pay")
@limiter.limit("30/minute")
async def update_total_pay(
    request: Request,
    cycle_id: str,
    body: TotalPayUpdate,
    user_id: CurrentUser,
    store: Store
):
    try:
        return cycle_service.update_total_pay(store, user_id, cycle_id, body.total_pay)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("update_total_pay failed")
        raise HTTPException(status_code=500, detail="Failed to update total pay")


@router.delete("/{cycle_id}")
@limiter.limit("30/minute")
async def delete_cycle(
    request: Request,
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """Delete a cycle with its periods, allocations and transactions."""
    try:
        cycle_service.delete_cycle(store, user_id, cycle_id)
        return {"message": "Cycle deleted"}
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("delete_cycle failed")
        raise HTTPException(status_code=500, detail="Failed to delete cycle")
