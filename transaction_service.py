"""Income/expense transactions recorded against a cycle."""
from typing import List
import logging

from access import require_cycle, require_transaction
from errors import InvalidInput, NotFound
from models import Transaction, TransactionCreate, TransactionUpdate
from validation import check_amount

logger = logging.getLogger(__name__)


def create_transaction(store, owner_id: str, body: TransactionCreate) -> Transaction:
    cycle = require_cycle(store, body.cycle_id, owner_id)
    if not body.description.strip():
        raise InvalidInput("Description is required")
    check_amount(body.amount, "amount")

    if body.period_id is not None:
        period = store.get_period_by_id(body.period_id)
        if period is None or period.cycle_id != cycle.id:
            raise NotFound("Period not found or does not belong to cycle")
    if body.allocation_id is not None:
        allocation = store.get_allocation_by_id(body.allocation_id)
        if allocation is None or allocation.cycle_id != cycle.id:
            raise NotFound("Allocation not found or does not belong to cycle")
        if body.period_id is not None and allocation.period_id != body.period_id:
            raise InvalidInput("Allocation does not belong to period")

    data = body.model_dump()
    data['description'] = body.description.strip()
    data['added_by'] = owner_id
    return store.insert_transaction(data)


def update_transaction(store, owner_id: str, transaction_id: str, body: TransactionUpdate) -> Transaction:
    transaction = require_transaction(store, transaction_id, owner_id)

    update_data = {k: v for k, v in body.model_dump().items() if v is not None}
    if not update_data:
        raise InvalidInput("No fields to update")
    if 'description' in update_data:
        if not update_data['description'].strip():
            raise InvalidInput("Description is required")
        update_data['description'] = update_data['description'].strip()
    check_amount(update_data.get('amount'), "amount")

    updated = store.update_transaction(transaction.id, update_data)
    if updated is None:
        raise NotFound("Transaction not found")
    return updated


def delete_transaction(store, owner_id: str, transaction_id: str) -> None:
    transaction = require_transaction(store, transaction_id, owner_id)
    store.delete_transaction(transaction.id)
    logger.info(f"Deleted transaction {transaction.id} from cycle {transaction.cycle_id}")


def list_cycle_transactions(store, owner_id: str, cycle_id: str) -> List[Transaction]:
    """Transactions of a cycle, newest date first."""
    cycle = require_cycle(store, cycle_id, owner_id)
    return store.get_transactions_by_cycle(cycle.id)
