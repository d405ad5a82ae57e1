"""
Bug Tracker Backend: Access Token Handling
============================================

What:  Encoding and verification of the bearer JWTs that authenticate API
       callers.
How:   PyJWT with a shared secret (HS256 by default). The user id travels in
       the `sub` claim; `exp` is checked by PyJWT on decode.
Who:   decode_access_token is used by the get_current_user dependency.
       create_access_token is for tooling and tests: in production, tokens
       are issued by the separate auth service with the same secret.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from bugtracker.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_MINUTES = 60 * 24


def create_access_token(
    user_id: uuid.UUID,
    secret: str,
    algorithm: str = "HS256",
    expires_minutes: Optional[int] = DEFAULT_EXPIRES_MINUTES,
) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {"sub": str(user_id), "iat": now}
    if expires_minutes is not None:
        payload["exp"] = now + timedelta(minutes=expires_minutes)
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> uuid.UUID:
    """
    Verify a token and return the user id it carries.

    Raises:
        AuthenticationError: bad signature, expired, or no usable `sub`
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected access token: %s", type(e).__name__)
        raise AuthenticationError("Invalid token")

    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Invalid token")
