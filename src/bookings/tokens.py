"""
Capability tokens: signed, time-bounded proof that a subject may perform one
action. A token is never trusted on its own; every check names the subject
and action the caller expects.
"""

import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Callable, Dict, Any, Optional

import jwt

from src.config import settings

RETRIEVE_ARTIFACT = "retrieve_artifact"


class TokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SUBJECT_MISMATCH = "subject_mismatch"


@dataclass(frozen=True)
class TokenCheck:
    status: TokenStatus
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.status == TokenStatus.VALID


class CapabilityTokenService:
    """Issue and verify HS256 capability tokens"""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        clock: Callable[[], float] = time.time
    ):
        self.secret = secret or settings.SECRET_KEY
        self.algorithm = algorithm or settings.ALGORITHM
        self.clock = clock

    def issue(self, subject: str, action: str, ttl: timedelta) -> str:
        now = self.clock()
        claims = {
            "sub": str(subject),
            "act": action,
            "iat": now,
            "exp": now + ttl.total_seconds(),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str], expected_subject: str, expected_action: str) -> TokenCheck:
        if not token:
            return TokenCheck(TokenStatus.MALFORMED)

        # PyJWT compares HMAC signatures with hmac.compare_digest. Expiry is
        # checked below with sub-second precision, so its own check is off.
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False}
            )
        except jwt.InvalidTokenError:
            return TokenCheck(TokenStatus.MALFORMED)

        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)) or "sub" not in claims or "act" not in claims:
            return TokenCheck(TokenStatus.MALFORMED)

        if not self.clock() < expires_at:
            return TokenCheck(TokenStatus.EXPIRED, claims)

        if claims["sub"] != str(expected_subject) or claims["act"] != expected_action:
            return TokenCheck(TokenStatus.SUBJECT_MISMATCH, claims)

        return TokenCheck(TokenStatus.VALID, claims)
