"""Request dependencies: per-request context and caller authentication."""

import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..orchestrator import SyncContext

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> SyncContext:
    """Build (or reuse) the SyncContext attached to the application."""
    return request.app.state.context_factory()


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _bearer(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing bearer token")
    return credentials.credentials


async def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: SyncContext = Depends(get_context),
) -> None:
    """Scheduler calls carry the shared cron secret."""
    token = _bearer(credentials)
    expected = context.config.cron_secret
    if not expected or not hmac.compare_digest(token, expected):
        logger.warning("Rejected scheduled trigger with invalid cron secret")
        raise _unauthorized()


async def require_operator(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: SyncContext = Depends(get_context),
) -> str:
    """Manual calls carry an operator session token; the user must be an admin.

    Returns:
        The operator's user id.
    """
    token = _bearer(credentials)
    user_id = context.db.get_user_id(token)
    if user_id is None:
        raise _unauthorized("Invalid session")
    role = context.db.get_user_role(user_id)
    if role != ADMIN_ROLE:
        logger.warning("User %s with role %s denied discovery access", user_id, role)
        raise _unauthorized("Admin role required")
    return user_id
