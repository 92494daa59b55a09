"""
Wellspring Backend - Caller Identity Dependency
================================================

What:  FastAPI dependency returning the authenticated caller's id.
How:   Reads the identity header (settings.auth_user_header, default
       X-User-ID) that the upstream auth gateway sets after verifying the
       caller's credentials. This service does not verify credentials itself.
Who:   Injected into every owner-only route (sessions writes, "my" reads,
       content fetch).

Usage:
    @router.get("/my")
    async def list_my_sessions(owner_id: str = Depends(get_current_user)):
        ...
"""

import logging
import re

from fastapi import Request

from app.config import settings
from app.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Opaque ids from the gateway: uuids, "user_2abc", emails, ...
RE_USER_ID = re.compile(r"^[\w.@:|\-]{1,128}$")


async def get_current_user(request: Request) -> str:
    """
    Returns:
        The caller's id, stripped of surrounding whitespace.

    Raises:
        AuthenticationError: header missing, empty or malformed (→ 401)
    """
    user_id = (request.headers.get(settings.auth_user_header) or "").strip()
    if not user_id:
        raise AuthenticationError()
    if not RE_USER_ID.match(user_id):
        logger.warning("Rejected malformed %s header", settings.auth_user_header)
        raise AuthenticationError(message="Invalid caller identity.")

    request.state.user_id = user_id
    return user_id
