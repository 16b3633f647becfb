import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sessiongate.db.models.account import Account


class AccountStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_account_by_id(self, account_id: uuid.UUID) -> Optional[Account]:
        async with self._session_factory() as db:
            return await db.scalar(sa.select(Account).where(Account.id == account_id))

    async def current_version(self, account_id: uuid.UUID) -> Optional[int]:
        async with self._session_factory() as db:
            return await db.scalar(
                sa.select(Account.token_version).where(
                    Account.id == account_id,
                    Account.is_active.is_(True),
                )
            )

    async def increment_version(self, account_id: uuid.UUID) -> Optional[int]:
        """Atomically add one to the account's token version and return the new value."""
        async with self._session_factory() as db:
            result = await db.execute(
                sa.update(Account)
                .where(Account.id == account_id)
                .values(token_version=Account.token_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                return None

            version = await db.scalar(
                sa.select(Account.token_version).where(Account.id == account_id)
            )
            await db.commit()
            return version
