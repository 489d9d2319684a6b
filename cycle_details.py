"""
Full cycle view: the cycle, its periods with rollover figures, and its
allocations.
"""
import logging

from access import require_cycle
from models import CycleWithPeriods
from rollover import compute_rollover, group_allocations, sort_periods, sum_expenses

logger = logging.getLogger(__name__)


def get_cycle_with_periods(store, owner_id: str, cycle_id: str) -> CycleWithPeriods:
    """
    Load a cycle the caller owns and compute per-period budgets.

    Cycles that are not split into periods come back with empty period and
    allocation lists. All reads finish before the rollover fold runs; any
    failing read aborts the whole call.
    """
    cycle = require_cycle(store, cycle_id, owner_id)

    if not cycle.has_periods:
        return CycleWithPeriods(cycle=cycle, periods=[], allocations=[])

    periods = sort_periods(store.get_periods_by_cycle(cycle.id, active_only=True))
    allocations = store.get_allocations_by_cycle(cycle.id, active_only=True)
    spent_by_period = {
        period.id: sum_expenses(store.get_expense_transactions_by_period(period.id))
        for period in periods
    }

    enriched = compute_rollover(periods, group_allocations(allocations), spent_by_period)
    logger.debug("Computed rollover for cycle %s over %d periods", cycle.id, len(enriched))

    return CycleWithPeriods(cycle=cycle, periods=enriched, allocations=allocations)
