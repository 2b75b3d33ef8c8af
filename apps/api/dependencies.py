"""
Request dependencies - per-request session built from the caller's token
"""
from typing import Optional

from fastapi import Header

from packages.common.session import SessionContext, open_session


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Google OAuth access token from 'Authorization: Bearer <token>', if any"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_session(authorization: Optional[str] = Header(default=None)) -> SessionContext:
    """
    Open a session for this request.

    Without a bearer token the service account configured for the process
    is used.
    """
    return await open_session(access_token=bearer_token(authorization))
