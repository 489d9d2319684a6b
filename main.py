import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import config
from dependencies import limiter
from errors import BudgetError, budget_error_handler
from routers import cycles, transactions

# --- 1. SETUP ---
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Cycle Budget API",
    description="Pay cycles split into periods, with allocations, transactions and budget rollover.",
    version="0.3.0"
)

# --- 2. MIDDLEWARE (CORS) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiter to app state
app.state.limiter = limiter


# Custom rate limit error handler with CORS headers
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    response = _rate_limit_exceeded_handler(request, exc)
    origin = request.headers.get("origin", "")
    if origin in config.ALLOWED_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response

app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(BudgetError, budget_error_handler)

# --- 3. ROUTERS ---
app.include_router(cycles.router)
app.include_router(transactions.router)


# --- 4. PUBLIC ENDPOINTS ---
@app.get("/")
def read_root():
    return {"status": "Cycle Budget API is alive and well!"}
