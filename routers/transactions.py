"""
TRANSACTIONS Router - Income and expense records for a cycle
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Annotated
import logging

import transaction_service
from dependencies import get_current_user, get_store, limiter
from errors import BudgetError
from models import TransactionCreate, TransactionUpdate
from store import SupabaseStore

logger = logging.getLogger(__name__)

CurrentUser = Annotated[str, Depends(get_current_user)]
Store = Annotated[SupabaseStore, Depends(get_store)]

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
    responses={401: {"description": "Unauthorized"}}
)


@router.get("")
async def list_transactions(
    cycle_id: str,
    user_id: CurrentUser,
    store: Store
):
    """List a cycle's transactions, newest first."""
    try:
        return transaction_service.list_cycle_transactions(store, user_id, cycle_id)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("list_transactions failed")
        raise HTTPException(status_code=500, detail="Failed to load transactions")


@router.post("")
@limiter.limit("60/minute")
async def create_transaction(
    request: Request,
    body: TransactionCreate,
    user_id: CurrentUser,
    store: Store
):
    """Record an income or expense. Expenses with a period_id count against that period."""
    try:
        return transaction_service.create_transaction(store, user_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("create_transaction failed")
        raise HTTPException(status_code=500, detail="Failed to create transaction")


@router.put("/{transaction_id}")
@limiter.limit("60/minute")
async def update_transaction(
    request: Request,
    transaction_id: str,
    body: TransactionUpdate,
    user_id: CurrentUser,
    store: Store
):
    try:
        return transaction_service.update_transaction(store, user_id, transaction_id, body)
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("update_transaction failed")
        raise HTTPException(status_code=500, detail="Failed to update transaction")


@router.delete("/{transaction_id}")
@limiter.limit("30/minute")
async def delete_transaction(
    request: Request,
    transaction_id: str,
    user_id: CurrentUser,
    store: Store
):
    try:
        transaction_service.delete_transaction(store, user_id, transaction_id)
        return {"message": "Transaction deleted"}
    except (HTTPException, BudgetError):
        raise
    except Exception:
        logger.exception("delete_transaction failed")
        raise HTTPException(status_code=500, detail="Failed to delete transaction")
