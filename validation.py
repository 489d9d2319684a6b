"""Input checks applied before any write."""
import math

from errors import InvalidInput


def check_amount(value, field: str, positive: bool = False):
    """Reject NaN/inf and negative amounts. None means "not provided" and passes."""
    if value is None:
        return
    if not math.isfinite(value) or value < 0:
        raise InvalidInput(f"{field} must be a non-negative number")
    if positive and value == 0:
        raise InvalidInput(f"{field} must be greater than 0")


def check_date_range(start_date, end_date, label: str, allow_same_day: bool = False):
    if start_date is None or end_date is None:
        return
    if end_date < start_date or (end_date == start_date and not allow_same_day):
        raise InvalidInput(f"{label} end date must be after its start date")
