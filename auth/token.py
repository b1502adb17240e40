import re
import calendar
import logging
from datetime import datetime
from typing import Callable, Optional

import jwt
from jwt.exceptions import PyJWTError as JWTError

from utils.clock import utcnow

ALGORITHM = "HS256"
DEFAULT_EXPIRY_SECONDS = 24 * 60 * 60
CLAIM_FIELDS = ("id", "email", "username")

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}
_EXPIRY_RE = re.compile(r"^(\d+)([smhd])$")

logger = logging.getLogger(__name__)

def parse_expiry(expiry: str) -> int:
    """Convert "24h" / "7d" / "30m" / "45s" to seconds. Anything else means 24h."""
    match = _EXPIRY_RE.match((expiry or "").strip())
    if not match:
        return DEFAULT_EXPIRY_SECONDS
    value, unit = match.groups()
    return int(value) * _UNIT_SECONDS[unit]


class TokenService:
    def __init__(self, secret: str, expiry: str = "24h", clock: Callable[[], datetime] = utcnow):
        if not secret:
            raise ValueError("JWT secret is required")
        self._secret = secret
        self._clock = clock
        self.ttl_seconds = parse_expiry(expiry)

    def _now_ts(self) -> int:
        return calendar.timegm(self._clock().utctimetuple())

    def sign(self, claims: dict) -> str:
        missing = [k for k in CLAIM_FIELDS if not claims.get(k)]
        if missing:
            raise ValueError(f"Missing token claims: {', '.join(missing)}")

        iat = self._now_ts()
        payload = {k: str(claims[k]) for k in CLAIM_FIELDS}
        payload.update({"iat": iat, "nbf": iat, "exp": iat + self.ttl_seconds})
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM, headers={"typ": "JWT"})
        logger.debug(f"Session token created for {payload['id']} expiring at {payload['exp']}")
        return token

    def verify(self, token: str) -> Optional[dict]:
        if not token:
            return None
        now = self._now_ts()
        try:
            # time claims are checked against the injected clock below
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "require": ["exp", "iat", "nbf"],
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except JWTError as e:
            logger.warning(f"Failed to decode JWT: {e}")
            return None

        if now >= payload["exp"]:
            logger.warning("Failed to decode JWT: Signature has expired")
            return None
        if now < payload["nbf"]:
            logger.warning("Failed to decode JWT: The token is not yet valid (nbf)")
            return None
        if any(not payload.get(k) for k in CLAIM_FIELDS):
            logger.warning("Failed to decode JWT: missing identity claims")
            return None

        return {k: payload[k] for k in (*CLAIM_FIELDS, "iat", "nbf", "exp")}
