"""
Environment configuration for the Cycle Budget API.
Values are read once at import time, after loading a local .env file.
"""
import os
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

RATE_LIMIT_ENABLED = os.environ.get("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")

def parse_payday(value) -> int:
    """Day of month the first period of a split cycle starts on; must be 2-28."""
    try:
        day = int(value)
    except (TypeError, ValueError):
        raise RuntimeError(f"DEFAULT_PAYDAY must be a whole number, got {value!r}")
    if not 2 <= day <= 28:
        raise RuntimeError(f"DEFAULT_PAYDAY must be between 2 and 28, got {day}")
    return day


DEFAULT_PAYDAY = parse_payday(os.environ.get("DEFAULT_PAYDAY", "11"))

# Table names
CYCLES_TABLE = "cycles"
PERIODS_TABLE = "cycle_periods"
ALLOCATIONS_TABLE = "period_allocations"
TRANSACTIONS_TABLE = "cycle_transactions"
