import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
ALGORITHM = "HS256"


class TokenService:
    """Issues and checks signed bearer tokens carrying a user id.

    ``verify`` never raises for a bad token: every failure (missing header,
    wrong scheme, bad signature, expiry, missing claim) yields ``None``.
    """

    def __init__(self, secret: str, ttl_seconds: int = 60 * 60 * 24) -> None:
        if not secret:
            raise ConfigurationError("Missing JWT_SECRET in environment variables")
        self._secret = secret
        self._ttl = timedelta(seconds=ttl_seconds)

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {"userId": user_id, "iat": issued_at, "exp": issued_at + self._ttl}
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> Optional[int]:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options={"require": ["exp", "userId"]})
        except jwt.ExpiredSignatureError:
            logger.debug("rejected token: expired")
            return None
        except jwt.InvalidTokenError as exc:
            logger.debug("rejected token: %s", exc)
            return None
        user_id = claims.get("userId")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            logger.debug("rejected token: userId claim is not an integer")
            return None
        return user_id

    def verify(self, authorization: Optional[str]) -> Optional[int]:
        token = token_from_header(authorization)
        if token is None:
            return None
        return self.decode(token)


def token_from_header(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    # Scheme match is case-sensitive.
    if not authorization.startswith(BEARER_PREFIX):
        logger.debug("rejected token: malformed Authorization scheme")
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None
