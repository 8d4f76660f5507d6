"""
Bearer token issuing and validation.

Tokens are stateless HS256 JWTs carrying exactly three claims::

    {"authorized": true, "user_id": <int>, "exp": <unix timestamp>}

Expiry is the only way a token stops being valid; there is no revocation
list.  Validation pins the algorithm to HS256 and maps every failure to
one of the ``TokenError`` subclasses so callers never see a PyJWT
exception or a partially trusted identity.
"""
import time
from datetime import timedelta
from typing import Callable

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from conduit.errors import (
    ConfigurationFatal,
    TokenBadSignature,
    TokenExpired,
    TokenMalformed,
    TokenWrongAlgorithm,
)

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(minutes=15)
REQUIRED_CLAIMS = ["authorized", "user_id", "exp"]


class TokenClaims(BaseModel):
    """Decoded payload; unknown or missing claims are rejected."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)

    authorized: bool
    user_id: int = Field(gt=0)
    exp: int


class TokenService:
    def __init__(
        self,
        secret: str,
        lifetime: timedelta = TOKEN_LIFETIME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ConfigurationFatal("JWT_SECRET is not set")
        self._secret = secret
        self._lifetime = lifetime
        self._clock = clock

    def issue(self, user_id: int) -> str:
        claims = TokenClaims(
            authorized=True,
            user_id=user_id,
            exp=int(self._clock() + self._lifetime.total_seconds()),
        )
        try:
            return jwt.encode(claims.model_dump(), self._secret, algorithm=ALGORITHM)
        except jwt.PyJWTError as exc:
            raise ConfigurationFatal(f"cannot sign tokens: {type(exc).__name__}") from exc

    def validate(self, token: str) -> int:
        """Return the user id carried by *token* or raise a ``TokenError``."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidAlgorithmError as exc:
            raise TokenWrongAlgorithm(str(exc)) from exc
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired(str(exc)) from exc
        # InvalidSignatureError subclasses DecodeError, so it goes first.
        except jwt.InvalidSignatureError as exc:
            raise TokenBadSignature(str(exc)) from exc
        except jwt.PyJWTError as exc:
            raise TokenMalformed(str(exc)) from exc

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise TokenMalformed(f"{exc.error_count()} invalid claim(s)") from exc

        if not claims.authorized:
            raise TokenMalformed("token is not an authorization token")
        return claims.user_id
