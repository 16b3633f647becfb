import datetime as dt
import uuid
from dataclasses import dataclass

from jose import JWTError, jwt

from sessiongate.config import Config
from sessiongate.services.results import Failure, FailureKind, Ok, Result
from sessiongate.utils.clock import Clock, utc_now

ACCESS_SCOPE = "access"


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    subject: uuid.UUID
    version: int
    issued_at: dt.datetime
    expires_at: dt.datetime
    issuer: str


class TokenCodec:
    """Signs and verifies short-lived access tokens.

    The token carries the account id (``sub``) and the account's token version
    (``ver``) at the time of issue. Verification failures all collapse into
    ``INVALID_TOKEN``; the reason is kept for server-side logs only.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str,
        issuer: str,
        ttl: dt.timedelta,
        clock_skew: dt.timedelta = dt.timedelta(seconds=30),
        clock: Clock = utc_now,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._ttl = ttl
        self._clock_skew = clock_skew
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config, clock: Clock = utc_now) -> "TokenCodec":
        return cls(
            secret=config.JWT_SECRET,
            algorithm=config.JWT_ALG,
            issuer=config.JWT_ISSUER,
            ttl=config.access_ttl,
            clock_skew=dt.timedelta(seconds=config.CLOCK_SKEW_SEC),
            clock=clock,
        )

    @property
    def ttl(self) -> dt.timedelta:
        return self._ttl

    def issue(self, account_id: uuid.UUID, version: int) -> str:
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise ValueError("version must be a non-negative integer")

        now = self._clock()
        payload = {
            "iss": self._issuer,
            "sub": str(account_id),
            "scope": ACCESS_SCOPE,
            "ver": version,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Result[AccessTokenClaims]:
        if not isinstance(token, str) or not token:
            return Failure(FailureKind.INVALID_TOKEN, "empty token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={
                    # Expiry is checked below against the injected clock.
                    "verify_exp": False,
                    "verify_aud": False,
                    "require_iss": True,
                    "require_sub": True,
                },
            )
        except JWTError as exc:
            return Failure(FailureKind.INVALID_TOKEN, f"decode: {exc.__class__.__name__}")

        if payload.get("scope") != ACCESS_SCOPE:
            return Failure(FailureKind.INVALID_TOKEN, "wrong scope")

        try:
            subject = uuid.UUID(payload["sub"])
        except (TypeError, ValueError):
            return Failure(FailureKind.INVALID_TOKEN, "malformed subject")

        version = payload.get("ver")
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            return Failure(FailureKind.INVALID_TOKEN, "missing or negative version")

        iat, exp = payload.get("iat"), payload.get("exp")
        if type(iat) is not int or type(exp) is not int:
            return Failure(FailureKind.INVALID_TOKEN, "malformed timestamps")

        issued_at = dt.datetime.fromtimestamp(iat, tz=dt.timezone.utc)
        expires_at = dt.datetime.fromtimestamp(exp, tz=dt.timezone.utc)
        now = self._clock()
        if now > expires_at + self._clock_skew:
            return Failure(FailureKind.INVALID_TOKEN, "expired")
        if issued_at > now + self._clock_skew:
            return Failure(FailureKind.INVALID_TOKEN, "issued in the future")

        return Ok(AccessTokenClaims(
            subject=subject,
            version=version,
            issued_at=issued_at,
            expires_at=expires_at,
            issuer=payload["iss"],
        ))
