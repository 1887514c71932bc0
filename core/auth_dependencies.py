"""
FastAPI Authentication Dependencies for Microservices

The API gateway authenticates the caller and forwards the user id in the
``user-id`` / ``X-User-Id`` header. Services only read it.
"""

from fastapi import Header, HTTPException, status
from typing import Optional
import logging

logger = logging.getLogger(__name__)


async def require_user_id(
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Authentication dependency: the authenticated user's id.

    Raises:
        HTTPException 401: no user id forwarded by the gateway

    Usage:
        @app.get("/api/v1/orders")
        async def list_orders(user_id: str = Depends(require_user_id)):
            ...
    """
    user_id_value = (user_id or x_user_id or "").strip()
    if user_id_value:
        return user_id_value

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required"
    )


__all__ = [
    "require_user_id",
]
