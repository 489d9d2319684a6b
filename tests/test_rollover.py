from datetime import date

import pytest

from models import Allocation, Period, Transaction
from rollover import compute_rollover, group_allocations, sort_periods, sum_expenses


def _period(pid, number, budget, actual_income=None):
    return Period(
        id=pid,
        cycle_id="c1",
        name=f"Period {number}",
        start_date=date(2026, 10, 1),
        end_date=date(2026, 10, 15),
        period_number=number,
        budget=budget,
        actual_income=actual_income,
    )


def _allocation(aid, period_id, amount):
    return Allocation(id=aid, period_id=period_id, cycle_id="c1", name=aid, allocated_amount=amount)


def _tx(amount, tx_type="expense", period_id="p1"):
    return Transaction(
        id=f"t-{amount}-{tx_type}",
        cycle_id="c1",
        period_id=period_id,
        description="x",
        amount=amount,
        type=tx_type,
        date=date(2026, 10, 2),
        added_by="u1",
    )


def test_single_period_uses_budget_with_no_carry_over():
    [result] = compute_rollover([_period("p1", 1, 500.0)], {}, {"p1": 120.0})

    assert result.carry_over_from_previous == 0.0
    assert result.available_budget == 500.0
    assert result.total_spent == 120.0
    assert result.remaining_budget == 380.0
    assert result.total_allocated == 0.0
    assert result.allocations == []


def test_actual_income_replaces_budget():
    [result] = compute_rollover([_period("p1", 1, 500.0, actual_income=650.0)], {}, {"p1": 100.0})

    assert result.available_budget == 650.0
    assert result.remaining_budget == 550.0


def test_zero_actual_income_is_still_an_override():
    [result] = compute_rollover([_period("p1", 1, 500.0, actual_income=0.0)], {}, {})

    assert result.available_budget == 0.0
    assert result.remaining_budget == 0.0


def test_remainder_propagates_through_every_period():
    budgets = [300.0, 200.0, 100.0, 50.0]
    spent = [120.0, 260.0, 10.0, 0.0]
    periods = [_period(f"p{i}", i + 1, b) for i, b in enumerate(budgets)]
    spent_by_period = {f"p{i}": s for i, s in enumerate(spent)}

    results = compute_rollover(periods, {}, spent_by_period)

    assert [r.id for r in results] == ["p0", "p1", "p2", "p3"]
    for i in range(1, len(results)):
        assert results[i].carry_over_from_previous == results[i - 1].remaining_budget
    for i, result in enumerate(results):
        assert result.remaining_budget == pytest.approx(
            budgets[i] + result.carry_over_from_previous - spent[i]
        )


def test_overspend_carries_forward_as_deficit():
    periods = [_period("p1", 1, 600.0), _period("p2", 2, 400.0)]

    first, second = compute_rollover(periods, {}, {"p1": 700.0, "p2": 25.0})

    assert first.available_budget == 600.0
    assert first.remaining_budget == -100.0
    assert first.carry_over_from_previous == 0.0
    assert second.carry_over_from_previous == -100.0
    assert second.available_budget == 300.0
    assert second.remaining_budget == 275.0


def test_deficit_is_not_clamped_when_next_period_is_also_short():
    periods = [_period("p1", 1, 100.0), _period("p2", 2, 50.0), _period("p3", 3, 10.0)]

    results = compute_rollover(periods, {}, {"p1": 200.0, "p2": 0.0})

    assert [r.remaining_budget for r in results] == [-100.0, -50.0, -40.0]
    assert results[2].carry_over_from_previous == -50.0


def test_no_periods_gives_empty_list():
    assert compute_rollover([], {}, {}) == []


def test_total_allocated_ignores_allocation_order():
    allocations = [_allocation("a", "p1", 100.25), _allocation("b", "p1", 49.75), _allocation("c", "p1", 50.0)]
    period = _period("p1", 1, 200.0)

    [forward] = compute_rollover([period], {"p1": allocations}, {})
    [backward] = compute_rollover([period], {"p1": list(reversed(allocations))}, {})

    assert forward.total_allocated == backward.total_allocated == 200.0
    assert [a.id for a in forward.allocations] == ["a", "b", "c"]


def test_period_order_changes_rollover():
    a = _period("pa", 1, 100.0)
    b = _period("pb", 2, 300.0)
    spent = {"pa": 150.0, "pb": 100.0}

    a_first = {r.id: r for r in compute_rollover([a, b], {}, spent)}
    b_first = {r.id: r for r in compute_rollover([b, a], {}, spent)}

    assert a_first["pb"].carry_over_from_previous == -50.0
    assert b_first["pa"].carry_over_from_previous == 200.0
    assert a_first["pa"].remaining_budget != b_first["pa"].remaining_budget


def test_allocated_amount_does_not_affect_remaining_budget():
    period = _period("p1", 1, 100.0)
    allocations = {"p1": [_allocation("a", "p1", 5000.0)]}

    [result] = compute_rollover([period], allocations, {"p1": 40.0})

    assert result.total_allocated == 5000.0
    assert result.remaining_budget == 60.0


def test_full_precision_is_kept():
    [result] = compute_rollover([_period("p1", 1, 0.3)], {}, {"p1": 0.1})

    assert result.remaining_budget == 0.3 - 0.1


def test_sort_periods_is_numeric_and_stable():
    p10 = _period("ten", 10, 1.0)
    p2 = _period("two", 2, 1.0)
    dup_a = _period("dup-a", 1, 1.0)
    dup_b = _period("dup-b", 1, 1.0)

    ordered = sort_periods([p10, dup_a, p2, dup_b])

    assert [p.id for p in ordered] == ["dup-a", "dup-b", "two", "ten"]


def test_group_allocations_by_period():
    grouped = group_allocations([
        _allocation("a", "p1", 1.0),
        _allocation("b", "p2", 2.0),
        _allocation("c", "p1", 3.0),
    ])

    assert {k: [a.id for a in v] for k, v in grouped.items()} == {"p1": ["a", "c"], "p2": ["b"]}


def test_sum_expenses_skips_income():
    assert sum_expenses([_tx(10.0), _tx(5.5), _tx(100.0, "income")]) == 15.5
    assert sum_expenses([]) == 0.0
