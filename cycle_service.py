"""
Cycle, period and allocation operations.

Every function takes the store and the caller's user id first; ownership
is checked through access.py before anything is read or written.
"""
from collections import defaultdict
from typing import List, Optional
from dateutil.relativedelta import relativedelta
import datetime
import logging

from access import require_allocation, require_cycle, require_period
from errors import InvalidInput, NotFound
from models import (
    Allocation,
    AllocationCreate,
    AllocationDraft,
    AllocationUpdate,
    AllocationUsage,
    Cycle,
    CycleCreate,
    CycleSummary,
    CycleUpdate,
    CycleWithPeriodsCreate,
    DefaultPeriods,
    IncomeUpdate,
    Period,
    PeriodDraft,
    SpendingUpdate,
)
from validation import check_amount, check_date_range

logger = logging.getLogger(__name__)

PERIODS_PER_CYCLE = 2
DEFAULT_ALLOCATION_NAMES = ["Rent", "Restaurants", "Groceries"]


# ============================================================================
# HELPERS
# ============================================================================

def _validate_cycle_fields(name, start_date, end_date, total_pay):
    if name is not None and not name.strip():
        raise InvalidInput("Cycle name is required")
    check_amount(total_pay, "total_pay", positive=True)
    check_date_range(start_date, end_date, "Cycle")


def deactivate_active_cycles(store, owner_id: str, deactivated: Optional[List[Cycle]] = None) -> List[Cycle]:
    """
    Mark every active cycle of the owner inactive. Each cycle is appended to
    `deactivated` as soon as its update succeeds, so a caller that passes its
    own list knows what to reactivate if a later write fails.
    """
    if deactivated is None:
        deactivated = []
    for cycle in store.get_active_cycles(owner_id):
        store.update_cycle(cycle.id, {'is_active': False})
        deactivated.append(cycle)
        logger.info(f"Deactivated cycle {cycle.id} for user {owner_id}")
    return deactivated


def _undo_cycle_creation(store, owner_id: str, cycle: Optional[Cycle], deactivated: List[Cycle]):
    if cycle is not None:
        store.delete_allocations_by_cycle(cycle.id)
        store.delete_periods_by_cycle(cycle.id)
        store.delete_cycle(cycle.id)
    for previous in deactivated:
        store.update_cycle(previous.id, {'is_active': True})
    logger.warning(f"Rolled back cycle creation for user {owner_id}")


def _restore_cycle(store, cycle: Cycle, periods, allocations, transactions):
    """Re-insert whatever a failed cascade delete already removed, parents first."""
    if store.get_cycle_by_id(cycle.id) is None:
        store.insert_cycle(cycle.model_dump())

    present = {p.id for p in store.get_periods_by_cycle(cycle.id)}
    for period in periods:
        if period.id not in present:
            store.insert_period(period.model_dump())

    present = {a.id for a in store.get_allocations_by_cycle(cycle.id)}
    for allocation in allocations:
        if allocation.id not in present:
            store.insert_allocation(allocation.model_dump())

    present = {t.id for t in store.get_transactions_by_cycle(cycle.id)}
    for transaction in transactions:
        if transaction.id not in present:
            store.insert_transaction(transaction.model_dump())
    logger.warning(f"Restored cycle {cycle.id} after a failed delete")


def split_budgets(total_pay: float, allocations: List[AllocationDraft]) -> tuple:
    """
    First period budget is the sum of its allocations; the second period
    gets the rest of the pay. The two always add up to total_pay.
    """
    first_budget = sum(
        (a.allocated_amount for a in allocations if a.period_number == 1),
        0.0,
    )
    return first_budget, total_pay - first_budget


def suggest_periods(start: datetime.date) -> DefaultPeriods:
    """
    Default two-period split for a cycle starting on payday `start`:
    first half runs to the end of that month, second half from the 1st of
    the next month to the day before the next payday.
    """
    if not 2 <= start.day <= 28:
        raise InvalidInput("Cycle start day must be between the 2nd and the 28th")

    first_end = start + relativedelta(day=31)
    second_start = first_end + datetime.timedelta(days=1)
    second_end = second_start + relativedelta(day=start.day) - datetime.timedelta(days=1)

    return DefaultPeriods(
        start_date=start,
        end_date=second_end,
        periods=[
            PeriodDraft(name="First Half", start_date=start, end_date=first_end),
            PeriodDraft(name="Second Half", start_date=second_start, end_date=second_end),
        ],
        allocations=[
            AllocationDraft(period_number=1, name=name, allocated_amount=0)
            for name in DEFAULT_ALLOCATION_NAMES
        ],
    )


# ============================================================================
# CYCLES
# ============================================================================

def create_cycle(store, owner_id: str, body: CycleCreate) -> Cycle:
    _validate_cycle_fields(body.name, body.start_date, body.end_date, body.total_pay)

    deactivated = []
    try:
        deactivate_active_cycles(store, owner_id, deactivated)
        cycle = store.insert_cycle({
            'owner_id': owner_id,
            'name': body.name.strip(),
            'start_date': body.start_date,
            'end_date': body.end_date,
            'total_pay': body.total_pay,
            'is_active': True,
        })
    except Exception:
        try:
            _undo_cycle_creation(store, owner_id, None, deactivated)
        except Exception:
            logger.exception(f"Rollback of cycle creation for user {owner_id} failed")
        raise
    logger.info(f"Created cycle {cycle.id} for user {owner_id}")
    return cycle


def create_cycle_with_periods(store, owner_id: str, body: CycleWithPeriodsCreate) -> Cycle:
    """
    Create an active cycle split into two periods. Only period-1 allocations
    with a positive amount are stored; the period budgets come from
    split_budgets(), not from the submitted drafts.
    """
    _validate_cycle_fields(body.name, body.start_date, body.end_date, body.total_pay)
    if len(body.periods) != PERIODS_PER_CYCLE:
        raise InvalidInput("Both periods are required")
    for number, draft in enumerate(body.periods, start=1):
        if not draft.name.strip():
            raise InvalidInput(f"Period {number} name is required")
        check_date_range(draft.start_date, draft.end_date, f"Period {number}", allow_same_day=True)
    for allocation in body.allocations:
        if not allocation.name.strip():
            raise InvalidInput("Allocation name is required")
        check_amount(allocation.allocated_amount, "allocated_amount")

    first_allocations = [
        a for a in body.allocations if a.period_number == 1 and a.allocated_amount > 0
    ]
    first_budget, second_budget = split_budgets(body.total_pay, first_allocations)
    if second_budget < 0:
        raise InvalidInput("Period 1 allocations exceed total pay")

    # Nothing below is kept unless every write succeeds
    deactivated = []
    cycle = None
    try:
        deactivate_active_cycles(store, owner_id, deactivated)
        cycle = store.insert_cycle({
            'owner_id': owner_id,
            'name': body.name.strip(),
            'start_date': body.start_date,
            'end_date': body.end_date,
            'total_pay': body.total_pay,
            'is_active': True,
            'has_periods': True,
            'period_count': PERIODS_PER_CYCLE,
        })

        periods = []
        for number, (draft, budget) in enumerate(zip(body.periods, (first_budget, second_budget)), start=1):
            periods.append(store.insert_period({
                'cycle_id': cycle.id,
                'name': draft.name.strip(),
                'start_date': draft.start_date,
                'end_date': draft.end_date,
                'period_number': number,
                'budget': budget,
                'carry_over_from_previous': 0 if number == 1 else None,
                'is_active': True,
            }))

        for allocation in first_allocations:
            store.insert_allocation({
                'period_id': periods[0].id,
                'cycle_id': cycle.id,
                'name': allocation.name.strip(),
                'allocated_amount': allocation.allocated_amount,
                'is_active': True,
            })
    except Exception:
        try:
            _undo_cycle_creation(store, owner_id, cycle, deactivated)
        except Exception:
            logger.exception(f"Rollback of cycle creation for user {owner_id} failed")
        raise

    logger.info(f"Created split cycle {cycle.id} for user {owner_id} ({len(first_allocations)} allocations)")
    return cycle


def list_cycles(store, owner_id: str) -> List[Cycle]:
    return store.get_cycles_by_owner(owner_id)


def get_active_cycle(store, owner_id: str) -> Optional[Cycle]:
    active = store.get_active_cycles(owner_id)
    return active[0] if active else None


def get_cycle(store, owner_id: str, cycle_id: str) -> Cycle:
    return require_cycle(store, cycle_id, owner_id)


def update_cycle(store, owner_id: str, cycle_id: str, body: CycleUpdate) -> Cycle:
    """Partial update. Period budgets are not rebalanced when total_pay changes."""
    cycle = require_cycle(store, cycle_id, owner_id)

    update_data = {k: v for k, v in body.model_dump().items() if v is not None}
    if not update_data:
        raise InvalidInput("No fields to update")

    _validate_cycle_fields(
        update_data.get('name'),
        update_data.get('start_date', cycle.start_date),
        update_data.get('end_date', cycle.end_date),
        update_data.get('total_pay'),
    )
    if 'name' in update_data:
        update_data['name'] = update_data['name'].strip()

    updated = store.update_cycle(cycle.id, update_data)
    if updated is None:
        raise NotFound("Cycle not found")
    return updated


def update_total_pay(store, owner_id: str, cycle_id: str, total_pay: float) -> Cycle:
    cycle = require_cycle(store, cycle_id, owner_id)
    check_amount(total_pay, "total_pay", positive=True)

    updated = store.update_cycle(cycle.id, {'total_pay': total_pay})
    if updated is None:
        raise NotFound("Cycle not found")
    return updated


def delete_cycle(store, owner_id: str, cycle_id: str) -> None:
    """
    Delete a cycle together with its transactions, allocations and periods,
    children before parents. If any delete fails, the rows already removed
    are put back before the error propagates.
    """
    cycle = require_cycle(store, cycle_id, owner_id)

    transactions = store.get_transactions_by_cycle(cycle.id)
    allocations = store.get_allocations_by_cycle(cycle.id)
    periods = store.get_periods_by_cycle(cycle.id)
    try:
        store.delete_transactions_by_cycle(cycle.id)
        store.delete_allocations_by_cycle(cycle.id)
        store.delete_periods_by_cycle(cycle.id)
        store.delete_cycle(cycle.id)
    except Exception:
        try:
            _restore_cycle(store, cycle, periods, allocations, transactions)
        except Exception:
            logger.exception(f"Restoring cycle {cycle.id} failed")
        raise
    logger.info(f"Deleted cycle {cycle.id} for user {owner_id}")


def get_cycle_summary(store, owner_id: str, cycle_id: str) -> CycleSummary:
    """
    Cycle-level totals plus per-allocation usage.

    unassigned_pay is total_pay minus the sum of period budgets. It is 0
    right after create_cycle_with_periods and drifts when total_pay or the
    periods are edited later.
    """
    cycle = require_cycle(store, cycle_id, owner_id)

    allocations = store.get_allocations_by_cycle(cycle.id, active_only=True)
    transactions = store.get_transactions_by_cycle(cycle.id)
    periods = store.get_periods_by_cycle(cycle.id, active_only=True) if cycle.has_periods else []

    used = defaultdict(float)
    total_income = 0.0
    total_expenses = 0.0
    for tx in transactions:
        if tx.type == "income":
            total_income += tx.amount
            continue
        total_expenses += tx.amount
        if tx.allocation_id:
            used[tx.allocation_id] += tx.amount

    total_allocated = sum((a.allocated_amount for a in allocations), 0.0)
    budgeted = sum((p.budget for p in periods), 0.0)

    return CycleSummary(
        cycle_id=cycle.id,
        total_pay=cycle.total_pay,
        total_allocated=total_allocated,
        unallocated=cycle.total_pay - total_allocated,
        unassigned_pay=cycle.total_pay - budgeted if periods else 0.0,
        total_income=total_income,
        total_expenses=total_expenses,
        allocations=[
            AllocationUsage(
                **a.model_dump(),
                used=used[a.id],
                remaining=a.allocated_amount - used[a.id],
            )
            for a in allocations
        ],
    )


# ============================================================================
# PERIODS & ALLOCATIONS
# ============================================================================

def get_cycle_allocations(store, owner_id: str, cycle_id: str) -> List[Allocation]:
    cycle = require_cycle(store, cycle_id, owner_id)
    return store.get_allocations_by_cycle(cycle.id)


def add_allocation(store, owner_id: str, cycle_id: str, body: AllocationCreate) -> Allocation:
    cycle = require_cycle(store, cycle_id, owner_id)
    if not body.name.strip():
        raise InvalidInput("Allocation name is required")
    check_amount(body.allocated_amount, "allocated_amount")

    period = store.get_period_by_id(body.period_id)
    if period is None or period.cycle_id != cycle.id:
        raise NotFound("Period not found or does not belong to cycle")

    return store.insert_allocation({
        'period_id': period.id,
        'cycle_id': cycle.id,
        'name': body.name.strip(),
        'allocated_amount': body.allocated_amount,
        'is_active': True,
    })


def update_allocation(store, owner_id: str, allocation_id: str, body: AllocationUpdate) -> Allocation:
    allocation = require_allocation(store, allocation_id, owner_id)
    if not body.name.strip():
        raise InvalidInput("Allocation name is required")
    check_amount(body.allocated_amount, "allocated_amount")

    updated = store.update_allocation(allocation.id, {
        'name': body.name.strip(),
        'allocated_amount': body.allocated_amount,
    })
    if updated is None:
        raise NotFound("Allocation not found")
    return updated


def update_period_spending(store, owner_id: str, allocation_id: str, body: SpendingUpdate) -> Allocation:
    """Record the manual actual_spent figure on an allocation of the given period."""
    period = require_period(store, body.period_id, owner_id)
    check_amount(body.actual_spent, "actual_spent")

    allocation = store.get_allocation_by_id(allocation_id)
    if allocation is None or allocation.period_id != period.id:
        raise NotFound("Allocation not found or does not belong to period")

    updated = store.update_allocation(allocation.id, {'actual_spent': body.actual_spent})
    if updated is None:
        raise NotFound("Allocation not found")
    return updated


def set_period_income(store, owner_id: str, period_id: str, body: IncomeUpdate) -> Period:
    """Set or clear the actual income override used in place of the planned budget."""
    period = require_period(store, period_id, owner_id)
    check_amount(body.actual_income, "actual_income")

    updated = store.update_period(period.id, {'actual_income': body.actual_income})
    if updated is None:
        raise NotFound("Period not found")
    return updated
