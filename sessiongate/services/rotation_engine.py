import datetime as dt
import uuid
from enum import StrEnum
from typing import Optional

from sessiongate.db.models.refresh_token import RefreshToken, RevokedReason
from sessiongate.db.refresh_token_store import RefreshTokenStore
from sessiongate.logging import get_logger
from sessiongate.services.results import Failure, FailureKind, Ok, Result
from sessiongate.utils.clock import Clock, utc_now
from sessiongate.utils.hashing import digest_secret

logger = get_logger(__name__)


class TokenState(StrEnum):
    ACTIVE = "active"
    ROTATED = "rotated"
    EXPIRED = "expired"
    REVOKED_EXPLICIT = "revoked_explicit"


class RotationEngine:
    """Single-use refresh tokens: validate, revoke the old one, then mint its successor.

    A presented secret whose record is already revoked is a reuse signal. So is
    losing the conditional revoke to a concurrent caller; the two cases cannot
    be told apart and both fail closed.
    """

    def __init__(self, store: RefreshTokenStore, ttl: dt.timedelta, clock: Clock = utc_now):
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @property
    def store(self) -> RefreshTokenStore:
        return self._store

    def state_of(self, record: RefreshToken) -> TokenState:
        if record.revoked:
            if record.revoked_reason == RevokedReason.ROTATED.value:
                return TokenState.ROTATED
            return TokenState.REVOKED_EXPLICIT
        if self._clock() > record.expires_at:
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    async def issue(self, owner_id: uuid.UUID, account_version: int) -> str:
        raw_secret, _ = await self._store.create(owner_id, self._ttl, account_version)
        return raw_secret

    async def validate(self, raw_secret: str) -> Result[Optional[RefreshToken]]:
        """``Ok(record)`` when active, ``Ok(None)`` when unknown or expired."""
        if not raw_secret:
            return Ok(None)

        record = await self._store.find_by_hash(digest_secret(raw_secret))
        if record is None:
            return Ok(None)

        match self.state_of(record):
            case TokenState.ROTATED | TokenState.REVOKED_EXPLICIT:
                return Failure(FailureKind.REUSE_DETECTED, f"record {record.id} already revoked")
            case TokenState.EXPIRED:
                return Ok(None)
            case TokenState.ACTIVE:
                return Ok(record)

    async def rotate(self, raw_old_secret: str) -> Result[str]:
        """Exchange an active secret for a new one owned by the same account."""
        if not raw_old_secret:
            return Failure(FailureKind.INVALID_TOKEN, "blank secret")

        token_hash = digest_secret(raw_old_secret)
        record = await self._store.find_by_hash(token_hash)
        if record is None:
            return Failure(FailureKind.REUSE_DETECTED, "no record for presented secret")
        if record.revoked:
            return Failure(FailureKind.REUSE_DETECTED, f"record {record.id} already revoked")
        if self.state_of(record) is TokenState.EXPIRED:
            return Failure(FailureKind.INVALID_TOKEN, f"record {record.id} expired")

        rotated = await self._store.rotate(record, self._ttl)
        if rotated is None:
            return Failure(FailureKind.REUSE_DETECTED, f"lost revoke race on record {record.id}")

        raw_new_secret, new_record = rotated
        logger.info(
            "refresh_token.rotated",
            owner_id=str(record.owner_id),
            old_record_id=str(record.id),
            new_record_id=str(new_record.id),
        )
        return Ok(raw_new_secret)

    async def revoke(self, raw_secret: str) -> None:
        """Explicit single-session revoke; unknown or already-revoked secrets are ignored."""
        if not raw_secret:
            return
        await self._store.revoke_if_active(digest_secret(raw_secret), RevokedReason.LOGOUT)
