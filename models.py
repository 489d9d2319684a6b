"""
Pydantic records for cycles, periods, allocations and transactions.

Rows coming back from the database are validated into these models in
store.py, so the rest of the code never handles raw dicts.
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
import datetime


TransactionType = Literal["income", "expense"]


# ============================================================================
# STORED ENTITIES
# ============================================================================

class Cycle(BaseModel):
    id: str
    owner_id: str
    name: str
    start_date: datetime.date
    end_date: datetime.date
    total_pay: float
    is_active: bool = True
    has_periods: Optional[bool] = None
    period_count: Optional[int] = None
    created_at: Optional[datetime.datetime] = None


class Period(BaseModel):
    id: str
    cycle_id: str
    name: str
    start_date: datetime.date
    end_date: datetime.date
    period_number: int  # 1-based
    budget: float
    actual_income: Optional[float] = None
    carry_over_from_previous: Optional[float] = None
    is_active: bool = True


class Allocation(BaseModel):
    id: str
    period_id: str
    cycle_id: str
    name: str
    allocated_amount: float
    actual_spent: Optional[float] = None  # manual figure, never used for rollover
    is_active: bool = True


class Transaction(BaseModel):
    id: str
    cycle_id: str
    period_id: Optional[str] = None
    allocation_id: Optional[str] = None
    description: str
    amount: float
    type: TransactionType
    date: datetime.date
    added_by: str


# ============================================================================
# COMPUTED VIEWS
# ============================================================================

class EnrichedPeriod(Period):
    total_allocated: float
    total_spent: float
    available_budget: float
    remaining_budget: float
    carry_over_from_previous: float
    allocations: List[Allocation] = Field(default_factory=list)


class CycleWithPeriods(BaseModel):
    cycle: Cycle
    periods: List[EnrichedPeriod]
    allocations: List[Allocation]


class AllocationUsage(Allocation):
    used: float
    remaining: float


class CycleSummary(BaseModel):
    cycle_id: str
    total_pay: float
    total_allocated: float
    unallocated: float
    unassigned_pay: float
    total_income: float
    total_expenses: float
    allocations: List[AllocationUsage]


# ============================================================================
# REQUEST MODELS
# ============================================================================

class CycleCreate(BaseModel):
    name: str
    start_date: datetime.date
    end_date: datetime.date
    total_pay: float


class PeriodDraft(BaseModel):
    name: str
    start_date: datetime.date
    end_date: datetime.date
    budget: Optional[float] = None  # recomputed from allocations on create


class AllocationDraft(BaseModel):
    period_number: int
    name: str
    allocated_amount: float


class CycleWithPeriodsCreate(CycleCreate):
    periods: List[PeriodDraft]
    allocations: List[AllocationDraft] = []


class DefaultPeriods(BaseModel):
    start_date: datetime.date
    end_date: datetime.date
    periods: List[PeriodDraft]
    allocations: List[AllocationDraft]


class CycleUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    total_pay: Optional[float] = None


class TotalPayUpdate(BaseModel):
    total_pay: float


class AllocationCreate(BaseModel):
    period_id: str
    name: str
    allocated_amount: float


class AllocationUpdate(BaseModel):
    name: str
    allocated_amount: float


class SpendingUpdate(BaseModel):
    period_id: str
    actual_spent: float


class IncomeUpdate(BaseModel):
    actual_income: Optional[float] = None  # None clears the override


class TransactionCreate(BaseModel):
    cycle_id: str
    period_id: Optional[str] = None
    allocation_id: Optional[str] = None
    description: str
    amount: float
    type: TransactionType
    date: datetime.date


class TransactionUpdate(BaseModel):
    description: Optional[str] = None
    amount: Optional[float] = None
    type: Optional[TransactionType] = None
    date: Optional[datetime.date] = None
