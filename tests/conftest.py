import os
import uuid
from datetime import date
from typing import Annotated

import pytest

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from fastapi import Header, HTTPException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from dependencies import get_current_user, get_store  # noqa: E402
from main import app  # noqa: E402
from models import Allocation, Cycle, Period, Transaction  # noqa: E402

OWNER = "user-owner"
STRANGER = "user-stranger"


class InMemoryStore:
    """Dict-backed stand-in for SupabaseStore with the same method surface."""

    def __init__(self):
        self.tables = {"cycles": {}, "periods": {}, "allocations": {}, "transactions": {}}

    # --- generic helpers ---

    def _insert(self, table, model, data):
        row = dict(data)
        if not row.get("id"):
            row["id"] = str(uuid.uuid4())
        self.tables[table][row["id"]] = row
        return model.model_validate(row)

    def _get(self, table, model, record_id):
        row = self.tables[table].get(record_id)
        return model.model_validate(row) if row else None

    def _update(self, table, model, record_id, data):
        row = self.tables[table].get(record_id)
        if row is None:
            return None
        row.update(data)
        return model.model_validate(row)

    def _where(self, table, model, **filters):
        return [
            model.model_validate(row)
            for row in self.tables[table].values()
            if all(row.get(k) == v for k, v in filters.items())
        ]

    def _delete_where(self, table, **filters):
        for key in [k for k, row in self.tables[table].items()
                    if all(row.get(f) == v for f, v in filters.items())]:
            del self.tables[table][key]

    # --- cycles ---

    def get_cycle_by_id(self, cycle_id):
        return self._get("cycles", Cycle, cycle_id)

    def get_cycles_by_owner(self, owner_id):
        cycles = self._where("cycles", Cycle, owner_id=owner_id)
        return sorted(cycles, key=lambda c: c.start_date, reverse=True)

    def get_active_cycles(self, owner_id):
        return self._where("cycles", Cycle, owner_id=owner_id, is_active=True)

    def insert_cycle(self, data):
        return self._insert("cycles", Cycle, data)

    def update_cycle(self, cycle_id, data):
        return self._update("cycles", Cycle, cycle_id, data)

    def delete_cycle(self, cycle_id):
        self._delete_where("cycles", id=cycle_id)

    # --- periods ---

    def get_period_by_id(self, period_id):
        return self._get("periods", Period, period_id)

    def get_periods_by_cycle(self, cycle_id, active_only=False):
        filters = {"cycle_id": cycle_id}
        if active_only:
            filters["is_active"] = True
        return self._where("periods", Period, **filters)

    def insert_period(self, data):
        return self._insert("periods", Period, data)

    def update_period(self, period_id, data):
        return self._update("periods", Period, period_id, data)

    def delete_periods_by_cycle(self, cycle_id):
        self._delete_where("periods", cycle_id=cycle_id)

    # --- allocations ---

    def get_allocation_by_id(self, allocation_id):
        return self._get("allocations", Allocation, allocation_id)

    def get_allocations_by_cycle(self, cycle_id, active_only=False):
        filters = {"cycle_id": cycle_id}
        if active_only:
            filters["is_active"] = True
        return self._where("allocations", Allocation, **filters)

    def insert_allocation(self, data):
        return self._insert("allocations", Allocation, data)

    def update_allocation(self, allocation_id, data):
        return self._update("allocations", Allocation, allocation_id, data)

    def delete_allocations_by_cycle(self, cycle_id):
        self._delete_where("allocations", cycle_id=cycle_id)

    # --- transactions ---

    def get_transaction_by_id(self, transaction_id):
        return self._get("transactions", Transaction, transaction_id)

    def get_transactions_by_cycle(self, cycle_id):
        transactions = self._where("transactions", Transaction, cycle_id=cycle_id)
        return sorted(transactions, key=lambda t: t.date, reverse=True)

    def get_expense_transactions_by_period(self, period_id):
        return self._where("transactions", Transaction, period_id=period_id, type="expense")

    def insert_transaction(self, data):
        return self._insert("transactions", Transaction, data)

    def update_transaction(self, transaction_id, data):
        return self._update("transactions", Transaction, transaction_id, data)

    def delete_transaction(self, transaction_id):
        self._delete_where("transactions", id=transaction_id)

    def delete_transactions_by_cycle(self, cycle_id):
        self._delete_where("transactions", cycle_id=cycle_id)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    """TestClient where the bearer token is taken verbatim as the user id."""
    async def token_as_user(authorization: Annotated[str | None, Header()] = None) -> str:
        if not authorization:
            raise HTTPException(status_code=401, detail="Authorization header missing")
        return authorization.partition(" ")[2]

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = token_as_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(user_id=OWNER):
    return {"Authorization": f"Bearer {user_id}"}


@pytest.fixture
def split_cycle(store):
    """
    Cycle with total_pay 1000 split 600/400, two period-1 allocations and
    expenses of 700 in period 1 and 50 in period 2.
    """
    cycle = store.insert_cycle({
        "owner_id": OWNER,
        "name": "October",
        "start_date": date(2026, 10, 11),
        "end_date": date(2026, 11, 10),
        "total_pay": 1000.0,
        "is_active": True,
        "has_periods": True,
        "period_count": 2,
    })
    # Inserted out of order: storage order must not decide the rollover order
    second = store.insert_period({
        "cycle_id": cycle.id, "name": "Second Half",
        "start_date": date(2026, 11, 1), "end_date": date(2026, 11, 10),
        "period_number": 2, "budget": 400.0, "is_active": True,
    })
    first = store.insert_period({
        "cycle_id": cycle.id, "name": "First Half",
        "start_date": date(2026, 10, 11), "end_date": date(2026, 10, 31),
        "period_number": 1, "budget": 600.0, "carry_over_from_previous": 0, "is_active": True,
    })
    rent = store.insert_allocation({
        "period_id": first.id, "cycle_id": cycle.id, "name": "Rent",
        "allocated_amount": 450.0, "is_active": True,
    })
    groceries = store.insert_allocation({
        "period_id": first.id, "cycle_id": cycle.id, "name": "Groceries",
        "allocated_amount": 150.0, "is_active": True,
    })
    for period, amount, allocation in ((first, 450.0, rent), (first, 250.0, groceries), (second, 50.0, None)):
        store.insert_transaction({
            "cycle_id": cycle.id, "period_id": period.id,
            "allocation_id": allocation.id if allocation else None,
            "description": "spend", "amount": amount, "type": "expense",
            "date": period.start_date, "added_by": OWNER,
        })
    store.insert_transaction({
        "cycle_id": cycle.id, "period_id": first.id, "description": "bonus",
        "amount": 999.0, "type": "income", "date": date(2026, 10, 15), "added_by": OWNER,
    })
    return {"cycle": cycle, "first": first, "second": second, "rent": rent, "groceries": groceries}
