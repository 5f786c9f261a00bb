"""
PetNet Backend: Bearer Token Authentication
=============================================

What:  FastAPI dependency that turns `Authorization: Bearer <jwt>` into a user id.
How:   Verifies the HMAC signature and expiry with PyJWT and reads the `sub`
       claim. Tokens are issued by the identity provider; this service never
       sees passwords.
Who:   Every /api route depends on `get_current_user_id`.
"""

import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, settings as default_settings
from app.exceptions import AuthenticationError
from app.schemas.common import MAX_ID

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must produce our own 401 error body.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, config: Optional[Settings] = None) -> Dict[str, Any]:
    """Verify the token and return its claims. Raises AuthenticationError."""
    config = config or default_settings
    try:
        return jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected bearer token: %s", e)
        raise AuthenticationError("Invalid token")


def user_id_from_claims(claims: Dict[str, Any]) -> int:
    """The subject claim carries the numeric user id (as a string per RFC 7519)."""
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Token subject is not a valid user id")
    if not 0 < user_id <= MAX_ID:
        raise AuthenticationError("Token subject is not a valid user id")
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """Dependency: authenticated user id, or AuthenticationError (401)."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization token missing")
    claims = decode_token(credentials.credentials)
    return user_id_from_claims(claims)
