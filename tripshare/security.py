"""
TripShare Backend — Identity Gate
===================================

What:  Resolves the calling user from a bearer token.
Why:   Every community endpoint needs a verified user id before it touches
       storage; the like toggle must never run for an anonymous caller.
How:   FastAPI dependency built on HTTPBearer. Tokens are issued by the
       auth service and verified here with PyJWT using the shared secret.
       The `sub` claim is the user id.

Failure modes (all → UnauthenticatedError → 401):
    - No Authorization header, or not a Bearer scheme
    - Bad signature, malformed token, wrong audience
    - Expired token
    - Missing or empty `sub` claim
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tripshare.config import settings
from tripshare.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

# auto_error=False: we raise our own exception so the 401 body matches
# every other error response
bearer_scheme = HTTPBearer(auto_error=False)


def decode_user_id(token: str) -> str:
    """Verify a bearer token and return its subject."""
    options = {"require": ["exp", "sub"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError(message="Session has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected bearer token: %s", str(e))
        raise UnauthenticatedError(message="Invalid session token")

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id.strip():
        raise UnauthenticatedError(message="Invalid session token")
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency: the verified user id, or 401."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()
    return decode_user_id(credentials.credentials)
