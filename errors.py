"""
Domain errors raised by the budgeting services.
main.py maps them onto HTTP responses with the same {"detail": ...} body
FastAPI uses for HTTPException.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class BudgetError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BudgetError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AccessDenied(BudgetError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class InvalidInput(BudgetError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


async def budget_error_handler(request: Request, exc: BudgetError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
