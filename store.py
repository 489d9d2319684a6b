"""
Supabase-backed storage for cycles, periods, allocations and transactions.

Every read validates rows into the records in models.py. Writes take plain
dicts; dates are converted to ISO strings before they go over the wire.
"""
from typing import List, Optional, Protocol
from supabase import Client
import datetime

import config
from models import Allocation, Cycle, Period, Transaction


class CycleStore(Protocol):
    """Storage operations the services rely on."""

    def get_cycle_by_id(self, cycle_id: str) -> Optional[Cycle]: ...
    def get_cycles_by_owner(self, owner_id: str) -> List[Cycle]: ...
    def get_active_cycles(self, owner_id: str) -> List[Cycle]: ...
    def insert_cycle(self, data: dict) -> Cycle: ...
    def update_cycle(self, cycle_id: str, data: dict) -> Optional[Cycle]: ...
    def delete_cycle(self, cycle_id: str) -> None: ...

    def get_period_by_id(self, period_id: str) -> Optional[Period]: ...
    def get_periods_by_cycle(self, cycle_id: str, active_only: bool = False) -> List[Period]: ...
    def insert_period(self, data: dict) -> Period: ...
    def update_period(self, period_id: str, data: dict) -> Optional[Period]: ...
    def delete_periods_by_cycle(self, cycle_id: str) -> None: ...

    def get_allocation_by_id(self, allocation_id: str) -> Optional[Allocation]: ...
    def get_allocations_by_cycle(self, cycle_id: str, active_only: bool = False) -> List[Allocation]: ...
    def insert_allocation(self, data: dict) -> Allocation: ...
    def update_allocation(self, allocation_id: str, data: dict) -> Optional[Allocation]: ...
    def delete_allocations_by_cycle(self, cycle_id: str) -> None: ...

    def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]: ...
    def get_transactions_by_cycle(self, cycle_id: str) -> List[Transaction]: ...
    def get_expense_transactions_by_period(self, period_id: str) -> List[Transaction]: ...
    def insert_transaction(self, data: dict) -> Transaction: ...
    def update_transaction(self, transaction_id: str, data: dict) -> Optional[Transaction]: ...
    def delete_transaction(self, transaction_id: str) -> None: ...
    def delete_transactions_by_cycle(self, cycle_id: str) -> None: ...


def _serialize(data: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, (datetime.date, datetime.datetime)) else value
        for key, value in data.items()
    }


class StoreError(Exception):
    """A write returned no rows."""


class SupabaseStore:
    def __init__(self, client: Client):
        self.client = client

    # --- generic helpers ---

    def _get_one(self, table: str, model, record_id: str):
        result = self.client.table(table) \
            .select('*') \
            .eq('id', record_id) \
            .limit(1) \
            .execute()
        if not result.data:
            return None
        return model.model_validate(result.data[0])

    def _insert(self, table: str, model, data: dict):
        result = self.client.table(table).insert(_serialize(data)).execute()
        if not result.data:
            raise StoreError(f"Insert into {table} returned no rows")
        return model.model_validate(result.data[0])

    def _update(self, table: str, model, record_id: str, data: dict):
        result = self.client.table(table) \
            .update(_serialize(data)) \
            .eq('id', record_id) \
            .execute()
        if not result.data:
            return None
        return model.model_validate(result.data[0])

    def _delete_where(self, table: str, column: str, value: str) -> None:
        self.client.table(table).delete().eq(column, value).execute()

    # --- cycles ---

    def get_cycle_by_id(self, cycle_id: str) -> Optional[Cycle]:
        return self._get_one(config.CYCLES_TABLE, Cycle, cycle_id)

    def get_cycles_by_owner(self, owner_id: str) -> List[Cycle]:
        result = self.client.table(config.CYCLES_TABLE) \
            .select('*') \
            .eq('owner_id', owner_id) \
            .order('start_date', desc=True) \
            .execute()
        return [Cycle.model_validate(row) for row in result.data or []]

    def get_active_cycles(self, owner_id: str) -> List[Cycle]:
        result = self.client.table(config.CYCLES_TABLE) \
            .select('*') \
            .eq('owner_id', owner_id) \
            .eq('is_active', True) \
            .execute()
        return [Cycle.model_validate(row) for row in result.data or []]

    def insert_cycle(self, data: dict) -> Cycle:
        return self._insert(config.CYCLES_TABLE, Cycle, data)

    def update_cycle(self, cycle_id: str, data: dict) -> Optional[Cycle]:
        return self._update(config.CYCLES_TABLE, Cycle, cycle_id, data)

    def delete_cycle(self, cycle_id: str) -> None:
        self._delete_where(config.CYCLES_TABLE, 'id', cycle_id)

    # --- periods ---

    def get_period_by_id(self, period_id: str) -> Optional[Period]:
        return self._get_one(config.PERIODS_TABLE, Period, period_id)

    def get_periods_by_cycle(self, cycle_id: str, active_only: bool = False) -> List[Period]:
        """Periods of a cycle in storage order; callers sort by period_number."""
        query = self.client.table(config.PERIODS_TABLE) \
            .select('*') \
            .eq('cycle_id', cycle_id)
        if active_only:
            query = query.eq('is_active', True)
        result = query.execute()
        return [Period.model_validate(row) for row in result.data or []]

    def insert_period(self, data: dict) -> Period:
        return self._insert(config.PERIODS_TABLE, Period, data)

    def update_period(self, period_id: str, data: dict) -> Optional[Period]:
        return self._update(config.PERIODS_TABLE, Period, period_id, data)

    def delete_periods_by_cycle(self, cycle_id: str) -> None:
        self._delete_where(config.PERIODS_TABLE, 'cycle_id', cycle_id)

    # --- allocations ---

    def get_allocation_by_id(self, allocation_id: str) -> Optional[Allocation]:
        return self._get_one(config.ALLOCATIONS_TABLE, Allocation, allocation_id)

    def get_allocations_by_cycle(self, cycle_id: str, active_only: bool = False) -> List[Allocation]:
        query = self.client.table(config.ALLOCATIONS_TABLE) \
            .select('*') \
            .eq('cycle_id', cycle_id)
        if active_only:
            query = query.eq('is_active', True)
        result = query.execute()
        return [Allocation.model_validate(row) for row in result.data or []]

    def insert_allocation(self, data: dict) -> Allocation:
        return self._insert(config.ALLOCATIONS_TABLE, Allocation, data)

    def update_allocation(self, allocation_id: str, data: dict) -> Optional[Allocation]:
        return self._update(config.ALLOCATIONS_TABLE, Allocation, allocation_id, data)

    def delete_allocations_by_cycle(self, cycle_id: str) -> None:
        self._delete_where(config.ALLOCATIONS_TABLE, 'cycle_id', cycle_id)

    # --- transactions ---

    def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        return self._get_one(config.TRANSACTIONS_TABLE, Transaction, transaction_id)

    def get_transactions_by_cycle(self, cycle_id: str) -> List[Transaction]:
        result = self.client.table(config.TRANSACTIONS_TABLE) \
            .select('*') \
            .eq('cycle_id', cycle_id) \
            .order('date', desc=True) \
            .execute()
        return [Transaction.model_validate(row) for row in result.data or []]

    def get_expense_transactions_by_period(self, period_id: str) -> List[Transaction]:
        result = self.client.table(config.TRANSACTIONS_TABLE) \
            .select('*') \
            .eq('period_id', period_id) \
            .eq('type', 'expense') \
            .execute()
        return [Transaction.model_validate(row) for row in result.data or []]

    def insert_transaction(self, data: dict) -> Transaction:
        return self._insert(config.TRANSACTIONS_TABLE, Transaction, data)

    def update_transaction(self, transaction_id: str, data: dict) -> Optional[Transaction]:
        return self._update(config.TRANSACTIONS_TABLE, Transaction, transaction_id, data)

    def delete_transaction(self, transaction_id: str) -> None:
        self._delete_where(config.TRANSACTIONS_TABLE, 'id', transaction_id)

    def delete_transactions_by_cycle(self, cycle_id: str) -> None:
        self._delete_where(config.TRANSACTIONS_TABLE, 'cycle_id', cycle_id)
