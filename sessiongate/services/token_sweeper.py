import asyncio
import datetime as dt
import time

from sessiongate.db.refresh_token_store import RefreshTokenStore
from sessiongate.logging import get_logger
from sessiongate.utils.clock import Clock, utc_now

logger = get_logger(__name__)


class TokenSweeper:
    """Deletes refresh-token rows past their expiry, off the request path."""

    def __init__(self, store: RefreshTokenStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def run_once(self) -> int:
        started = time.perf_counter()
        deleted = await self._store.sweep_expired(self._clock())
        logger.info(
            "refresh_token.sweep_completed",
            deleted_count=deleted,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return deleted

    async def run_forever(self, interval: dt.timedelta) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                # A failed sweep only delays cleanup; the next tick retries.
                logger.exception("refresh_token.sweep_failed")
            await asyncio.sleep(interval.total_seconds())
