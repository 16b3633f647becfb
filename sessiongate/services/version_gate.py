import uuid
from typing import Optional

from sessiongate.db.account_store import AccountStore


class VersionGate:
    """Per-account token version; an access token is honoured only at the exact current value."""

    def __init__(self, accounts: AccountStore):
        self._accounts = accounts

    async def bump(self, account_id: uuid.UUID) -> Optional[int]:
        return await self._accounts.increment_version(account_id)

    async def current_version(self, account_id: uuid.UUID) -> Optional[int]:
        return await self._accounts.current_version(account_id)

    async def is_valid(self, account_id: uuid.UUID, presented_version: int) -> bool:
        if isinstance(presented_version, bool) or not isinstance(presented_version, int) or presented_version < 0:
            return False
        current = await self.current_version(account_id)
        return current is not None and current == presented_version
