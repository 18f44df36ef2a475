import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from postgrest.exceptions import APIError
from supabase import Client, create_client

from config.settings import ADMIN_USER_TYPE, SUPABASE_SERVICE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

ADMIN_TOKEN_COOKIE = "admin_token"


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None

    value = authorization.strip()
    if not value:
        return None

    if value.lower().startswith("bearer "):
        return value[7:].strip() or None

    return value


def _user_id(user: Any) -> Optional[str]:
    if isinstance(user, dict):
        return user.get("id")
    return getattr(user, "id", None)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL is not set")
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY is not set")
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)


def require_supabase_user(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    admin_token: Optional[str] = Cookie(default=None, alias=ADMIN_TOKEN_COOKIE),
) -> Any:
    """FastAPI dependency: validates the request JWT via Supabase Auth.

    The token is read from `Authorization: Bearer <jwt>`, falling back to the
    `admin_token` cookie set by the admin UI.
    """
    token = _extract_bearer_token(authorization) or admin_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    supabase = get_supabase_client()

    try:
        response = supabase.auth.get_user(token)
    except Exception:
        logger.info("Supabase auth verification failed", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = getattr(response, "user", None)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.supabase_user = user
    return user


def require_admin(
    user: Any = Depends(require_supabase_user),
    supabase_client: Client = Depends(get_supabase_client),
) -> Any:
    """
    Dependency that enforces admin access by checking `user_type` in public.users.
    """
    user_id = _user_id(user)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User ID not found")

    try:
        response = (
            supabase_client.table("users")
            .select("user_type")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
    except APIError as e:
        logger.error(f"Error validating admin status for {user_id}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error validating permissions",
        )

    if not response.data:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User profile not found")

    user_type = response.data[0].get("user_type")
    if user_type != ADMIN_USER_TYPE:
        logger.warning(f"Unauthorized admin access attempt by user {user_id} with type {user_type}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    return user
