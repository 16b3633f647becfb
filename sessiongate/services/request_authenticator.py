import uuid
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from sessiongate.db.account_store import AccountStore
from sessiongate.logging import get_logger
from sessiongate.services.results import Failure, FailureKind, Ok
from sessiongate.services.token_codec import TokenCodec
from sessiongate.services.version_gate import VersionGate

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    account_id: uuid.UUID
    username: str
    roles: FrozenSet[str]
    version: int

    @property
    def is_authenticated(self) -> bool:
        return True

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class Anonymous:
    @property
    def is_authenticated(self) -> bool:
        return False

    def has_role(self, role: str) -> bool:
        return False


ANONYMOUS = Anonymous()

Principal = Union[Identity, Anonymous]


class RequestAuthenticator:
    """Resolves the bearer credential of a request to an identity.

    Every failure degrades to ``ANONYMOUS``; whether anonymous is good enough
    is decided by the endpoint, not here.
    """

    def __init__(self, codec: TokenCodec, gate: VersionGate, accounts: AccountStore):
        self._codec = codec
        self._gate = gate
        self._accounts = accounts

    async def authenticate(self, bearer_token: Optional[str]) -> Principal:
        if not bearer_token:
            return ANONYMOUS

        match self._codec.verify(bearer_token):
            case Failure(kind=kind, reason=reason):
                return self._degrade(kind, reason)
            case Ok(value=claims):
                pass

        if not await self._gate.is_valid(claims.subject, claims.version):
            return self._degrade(FailureKind.ACCOUNT_INACTIVE_OR_MISSING, "version mismatch or no active account")

        account = await self._accounts.find_account_by_id(claims.subject)
        if account is None or not account.is_active:
            return self._degrade(FailureKind.ACCOUNT_INACTIVE_OR_MISSING, "account vanished after version check")

        return Identity(
            account_id=account.id,
            username=account.username,
            roles=frozenset(account.roles or ()),
            version=claims.version,
        )

    @staticmethod
    def _degrade(kind: FailureKind, reason: str) -> Anonymous:
        logger.debug("auth.degraded_to_anonymous", failure=kind.value, reason=reason)
        return ANONYMOUS

