"""
Shared dependencies for the Cycle Budget API
"""
from fastapi import Header, HTTPException, status
from functools import lru_cache
from typing import Annotated
from slowapi import Limiter
from slowapi.util import get_remote_address
from supabase import create_client, Client
import logging

import config
from store import SupabaseStore

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)


@lru_cache
def get_supabase() -> Client:
    """Create the Supabase client on first use."""
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_KEY:
        raise RuntimeError("Supabase URL and Service Key must be set in environment variables.")
    return create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)


def get_store() -> SupabaseStore:
    return SupabaseStore(get_supabase())


async def get_current_user(authorization: Annotated[str | None, Header()] = None) -> str:
    """
    Security dependency that validates the JWT bearer token.
    Returns the authenticated user's id, which is compared against cycle owners.
    """
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header missing")

    token_type, _, token = authorization.partition(' ')
    if token_type.lower() != 'bearer' or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token format")

    try:
        user_res = get_supabase().auth.get_user(token)
        user = user_res.user if user_res else None
    except Exception:
        logger.exception("Token validation failed")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication error")

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user.id
