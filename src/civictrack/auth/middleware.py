"""Acting-user identification middleware and role dependencies.

Authentication itself lives upstream; requests arrive carrying the acting
user's id in an ``X-User-Id`` header or as ``Authorization: Bearer <id>``.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from civictrack.core.types import UserRole
from civictrack.directory.models import User
from civictrack.repositories import resolve

USER_ID_HEADER = "X-User-Id"


class ActorMiddleware(BaseHTTPMiddleware):
    """Copies the caller's user id onto ``request.state.actor_id``."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.actor_id = None

        user_id = request.headers.get(USER_ID_HEADER, "").strip()
        if not user_id:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.lower().startswith("bearer "):
                user_id = auth_header[7:].strip()
        if user_id:
            request.state.actor_id = user_id

        return await call_next(request)


async def current_user(request: Request) -> User:
    """Resolve the acting user from the directory, or 401."""
    user_id = getattr(request.state, "actor_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = await resolve(request.app.state.directory.get_user(user_id))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_role(*roles: UserRole):
    """FastAPI dependency that admits only users holding one of ``roles``."""

    async def dependency(user: User = Depends(current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return Depends(dependency)
