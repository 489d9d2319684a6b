"""
Period budget rollover.

Each period's available budget is its income (the actual income override
when set, otherwise the planned budget) plus whatever was left over from
the previous period. The leftover is signed: an overspent period hands a
deficit to the next one.
"""
from collections import defaultdict
from functools import reduce
from typing import Dict, Iterable, List, NamedTuple, Tuple

from models import Allocation, EnrichedPeriod, Period, Transaction


class RolloverState(NamedTuple):
    carry_over: float
    periods: Tuple[EnrichedPeriod, ...]


def sort_periods(periods: Iterable[Period]) -> List[Period]:
    """Order periods by period_number. sorted() is stable, so ties keep storage order."""
    return sorted(periods, key=lambda p: p.period_number)


def group_allocations(allocations: Iterable[Allocation]) -> Dict[str, List[Allocation]]:
    grouped = defaultdict(list)
    for allocation in allocations:
        grouped[allocation.period_id].append(allocation)
    return dict(grouped)


def sum_expenses(transactions: Iterable[Transaction]) -> float:
    return sum((tx.amount for tx in transactions if tx.type == "expense"), 0.0)


def enrich_period(
    period: Period,
    allocations: List[Allocation],
    total_spent: float,
    carry_over: float,
) -> EnrichedPeriod:
    """Compute the budget figures for one period given the incoming carry-over."""
    income = period.actual_income if period.actual_income is not None else period.budget
    available_budget = income + carry_over
    remaining_budget = available_budget - total_spent

    return EnrichedPeriod(
        **period.model_dump(exclude={"carry_over_from_previous"}),
        total_allocated=sum((a.allocated_amount for a in allocations), 0.0),
        total_spent=total_spent,
        available_budget=available_budget,
        remaining_budget=remaining_budget,
        carry_over_from_previous=carry_over,
        allocations=list(allocations),
    )


def compute_rollover(
    periods: List[Period],
    allocations_by_period: Dict[str, List[Allocation]],
    spent_by_period: Dict[str, float],
) -> List[EnrichedPeriod]:
    """
    Fold over periods (already sorted by period_number), threading the
    carry-over from each period's remaining budget into the next.

    Missing entries in allocations_by_period / spent_by_period mean no
    allocations and nothing spent. No rounding is applied.
    """
    def step(state: RolloverState, period: Period) -> RolloverState:
        enriched = enrich_period(
            period,
            allocations_by_period.get(period.id, []),
            spent_by_period.get(period.id, 0.0),
            state.carry_over,
        )
        return RolloverState(
            carry_over=enriched.remaining_budget,
            periods=state.periods + (enriched,),
        )

    final = reduce(step, periods, RolloverState(carry_over=0.0, periods=()))
    return list(final.periods)
