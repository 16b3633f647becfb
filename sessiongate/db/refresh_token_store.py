import datetime as dt
import uuid
from typing import List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sessiongate.db.models.refresh_token import RefreshToken, RevokedReason
from sessiongate.utils.clock import Clock, utc_now
from sessiongate.utils.hashing import digest_secret
from sessiongate.utils.security import generate_refresh_secret


class RefreshTokenStore:
    """Persistent refresh-token records, keyed by the digest of the raw secret.

    Every method runs in its own short transaction so concurrent callers only
    coordinate through the database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock = utc_now):
        self._session_factory = session_factory
        self._clock = clock

    def _new_record(
        self,
        owner_id: uuid.UUID,
        ttl: dt.timedelta,
        account_version: int,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Tuple[str, RefreshToken]:
        raw_secret = generate_refresh_secret()
        now = self._clock()
        record = RefreshToken(
            id=uuid.uuid4(),
            owner_id=owner_id,
            parent_id=parent_id,
            account_version=account_version,
            token_hash=digest_secret(raw_secret),
            revoked=False,
            expires_at=now + ttl,
            created_at=now,
        )
        return raw_secret, record

    async def create(
        self,
        owner_id: uuid.UUID,
        ttl: dt.timedelta,
        account_version: int,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Tuple[str, RefreshToken]:
        raw_secret, record = self._new_record(owner_id, ttl, account_version, parent_id)

        async with self._session_factory() as db:
            db.add(record)
            await db.commit()

        return raw_secret, record

    async def find_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        async with self._session_factory() as db:
            return await db.scalar(sa.select(RefreshToken).where(RefreshToken.token_hash == token_hash))

    async def revoke_if_active(self, token_hash: str, reason: RevokedReason = RevokedReason.ROTATED) -> bool:
        """Flip ``revoked`` to true only if it is still false; True when this call did the flip."""
        async with self._session_factory() as db:
            result = await db.execute(self._revoke_statement(token_hash, reason))
            await db.commit()
            return result.rowcount == 1

    async def rotate(self, parent: RefreshToken, ttl: dt.timedelta) -> Optional[Tuple[str, RefreshToken]]:
        """Revoke ``parent`` and insert its successor in one transaction.

        Returns None when ``parent`` was no longer active. If the insert fails
        the revoke rolls back with it and the parent stays usable.
        """
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(self._revoke_statement(parent.token_hash, RevokedReason.ROTATED))
                if result.rowcount != 1:
                    return None

                raw_secret, successor = self._new_record(
                    parent.owner_id, ttl, parent.account_version, parent_id=parent.id
                )
                db.add(successor)

        return raw_secret, successor

    async def delete_all_for_owner(self, owner_id: uuid.UUID) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                sa.delete(RefreshToken)
                .where(RefreshToken.owner_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount

    async def sweep_expired(self, now: dt.datetime) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                sa.delete(RefreshToken)
                .where(RefreshToken.expires_at < now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount

    async def list_for_owner(self, owner_id: uuid.UUID) -> List[RefreshToken]:
        async with self._session_factory() as db:
            rows = await db.scalars(
                sa.select(RefreshToken)
                .where(RefreshToken.owner_id == owner_id)
                .order_by(RefreshToken.created_at)
            )
            return list(rows)

    @staticmethod
    def _revoke_statement(token_hash: str, reason: RevokedReason):
        return (
            sa.update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True, revoked_reason=reason.value)
            .execution_options(synchronize_session=False)
        )
