"""
Ownership checks.

Every record a caller touches is resolved to its cycle, and the cycle's
owner must be the caller. A missing record is reported before ownership
is looked at.
"""
from typing import Callable, Optional, TypeVar

from errors import AccessDenied, NotFound
from models import Allocation, Cycle, Period, Transaction

T = TypeVar("T")


def require_owner(
    fetch: Callable[[str], Optional[T]],
    owner_of: Callable[[T], str],
    record_id: str,
    owner_id: str,
    label: str,
) -> T:
    record = fetch(record_id)
    if record is None:
        raise NotFound(f"{label} not found")
    if owner_of(record) != owner_id:
        raise AccessDenied()
    return record


def _owner_via_cycle(store) -> Callable[[object], str]:
    def owner_of(record) -> str:
        cycle = store.get_cycle_by_id(record.cycle_id)
        if cycle is None:
            raise NotFound("Cycle not found")
        return cycle.owner_id
    return owner_of


def require_cycle(store, cycle_id: str, owner_id: str) -> Cycle:
    return require_owner(store.get_cycle_by_id, lambda c: c.owner_id, cycle_id, owner_id, "Cycle")


def require_period(store, period_id: str, owner_id: str) -> Period:
    return require_owner(store.get_period_by_id, _owner_via_cycle(store), period_id, owner_id, "Period")


def require_allocation(store, allocation_id: str, owner_id: str) -> Allocation:
    return require_owner(
        store.get_allocation_by_id, _owner_via_cycle(store), allocation_id, owner_id, "Allocation"
    )


def require_transaction(store, transaction_id: str, owner_id: str) -> Transaction:
    return require_owner(
        store.get_transaction_by_id, _owner_via_cycle(store), transaction_id, owner_id, "Transaction"
    )
