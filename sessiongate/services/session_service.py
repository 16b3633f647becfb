import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sessiongate.config import Config, config
from sessiongate.db.account_store import AccountStore
from sessiongate.db.refresh_token_store import RefreshTokenStore
from sessiongate.db.session import get_sessionmaker
from sessiongate.logging import get_logger
from sessiongate.services.request_authenticator import Principal, RequestAuthenticator
from sessiongate.services.results import Failure, FailureKind, Ok, Result
from sessiongate.services.rotation_engine import RotationEngine
from sessiongate.services.token_codec import TokenCodec
from sessiongate.services.version_gate import VersionGate
from sessiongate.utils.clock import Clock, utc_now
from sessiongate.utils.hashing import digest_secret

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SessionTokens:
    access_token: str
    raw_refresh_secret: str
    expires_in: int


class SessionService:
    def __init__(
        self,
        codec: TokenCodec,
        engine: RotationEngine,
        gate: VersionGate,
        authenticator: RequestAuthenticator,
    ):
        self.codec = codec
        self.engine = engine
        self.gate = gate
        self.authenticator = authenticator

    @classmethod
    def build(
        cls,
        config: Config,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ) -> "SessionService":
        accounts = AccountStore(session_factory)
        store = RefreshTokenStore(session_factory, clock=clock)
        codec = TokenCodec.from_config(config, clock=clock)
        gate = VersionGate(accounts)
        return cls(
            codec=codec,
            engine=RotationEngine(store, ttl=config.refresh_ttl, clock=clock),
            gate=gate,
            authenticator=RequestAuthenticator(codec, gate, accounts),
        )

    @property
    def store(self) -> RefreshTokenStore:
        return self.engine.store

    def _tokens(self, access_token: str, raw_refresh_secret: str) -> SessionTokens:
        return SessionTokens(
            access_token=access_token,
            raw_refresh_secret=raw_refresh_secret,
            expires_in=int(self.codec.ttl.total_seconds()),
        )

    async def issue_session(self, account_id: uuid.UUID) -> Result[SessionTokens]:
        version = await self.gate.current_version(account_id)
        if version is None:
            return Failure(FailureKind.ACCOUNT_INACTIVE_OR_MISSING, "no active account")

        access_token = self.codec.issue(account_id, version)
        raw_secret = await self.engine.issue(account_id, version)
        return Ok(self._tokens(access_token, raw_secret))

    async def refresh_session(
        self,
        raw_secret: Optional[str],
        *,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Result[SessionTokens]:
        if not raw_secret or not raw_secret.strip():
            return Failure(FailureKind.INVALID_TOKEN, "blank refresh secret")

        match await self.engine.validate(raw_secret):
            case Failure(kind=FailureKind.REUSE_DETECTED) as failure:
                await self._terminate_after_reuse(raw_secret, client_ip, user_agent)
                return failure
            case Failure() as failure:
                return failure
            case Ok(value=None):
                return Failure(FailureKind.INVALID_TOKEN, "unknown or expired refresh secret")
            case Ok(value=record):
                owner_id = record.owner_id

        version = await self.gate.current_version(owner_id)
        if version is None:
            return Failure(FailureKind.ACCOUNT_INACTIVE_OR_MISSING, "refresh owner is gone or inactive")
        # A bump since the session began invalidates it, even if the record escaped deletion.
        if record.account_version != version:
            return Failure(FailureKind.INVALID_TOKEN, "refresh record predates the current token version")

        match await self.engine.rotate(raw_secret):
            case Failure(kind=FailureKind.REUSE_DETECTED) as failure:
                await self._terminate_after_reuse(raw_secret, client_ip, user_agent)
                return failure
            case Failure() as failure:
                return failure
            case Ok(value=new_secret):
                pass

        return Ok(self._tokens(self.codec.issue(owner_id, version), new_secret))

    async def end_session(self, raw_secret: Optional[str]) -> None:
        if raw_secret:
            await self.engine.revoke(raw_secret)

    async def invalidate_all_sessions(self, account_id: uuid.UUID) -> Optional[int]:
        """Kill every access and refresh token of the account; returns the new version."""
        version = await self.gate.bump(account_id)
        deleted = await self.store.delete_all_for_owner(account_id)
        logger.info(
            "session.invalidated",
            account_id=str(account_id),
            version=version,
            deleted_refresh_count=deleted,
        )
        return version

    async def authenticate(self, bearer_token: Optional[str]) -> Principal:
        return await self.authenticator.authenticate(bearer_token)

    async def _terminate_after_reuse(
        self,
        raw_secret: str,
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        token_hash = digest_secret(raw_secret)
        record = await self.store.find_by_hash(token_hash)
        owner_id = record.owner_id if record is not None else None

        logger.warning(
            "refresh_token.reuse_detected",
            token_hash=token_hash,
            owner_id=str(owner_id) if owner_id else None,
            client_ip=client_ip,
            user_agent=user_agent,
        )

        if owner_id is not None:
            await self.invalidate_all_sessions(owner_id)


@lru_cache
def get_session_service() -> SessionService:
    return SessionService.build(config, get_sessionmaker())
