import asyncio
import datetime as dt
from types import SimpleNamespace

import pytest

import main
from sessiongate.services.token_sweeper import TokenSweeper


class FlakyStore:
    """Fails the first sweep, then reports a fixed count."""

    def __init__(self):
        self.calls = 0

    async def sweep_expired(self, now):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("database unavailable")
        return 3


async def _wait_for_calls(store: FlakyStore, count: int, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while store.calls < count:
        assert asyncio.get_running_loop().time() < deadline, f"only {store.calls} sweeps ran"
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_run_once_reports_deleted_count():
    store = FlakyStore()
    store.calls = 1

    assert await TokenSweeper(store).run_once() == 3


@pytest.mark.asyncio
async def test_failed_sweep_is_retried_on_the_next_tick():
    store = FlakyStore()
    task = asyncio.create_task(TokenSweeper(store).run_forever(dt.timedelta(milliseconds=1)))

    await _wait_for_calls(store, 2)
    assert not task.done()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


@pytest.mark.asyncio
async def test_lifespan_runs_and_stops_the_sweeper(app_config, monkeypatch):
    store = FlakyStore()
    monkeypatch.setattr(main, "config", app_config.model_copy(update={"SWEEP_INTERVAL_HOURS": 1e-6}))
    monkeypatch.setattr(main, "get_session_service", lambda: SimpleNamespace(store=store))

    async with main.lifespan(main.app):
        await _wait_for_calls(store, 2)

    calls_at_shutdown = store.calls
    await asyncio.sleep(0.02)
    assert store.calls == calls_at_shutdown


@pytest.mark.asyncio
async def test_lifespan_without_interval_starts_nothing(app_config, monkeypatch):
    store = FlakyStore()
    monkeypatch.setattr(main, "config", app_config.model_copy(update={"SWEEP_INTERVAL_HOURS": 0}))
    monkeypatch.setattr(main, "get_session_service", lambda: SimpleNamespace(store=store))

    async with main.lifespan(main.app):
        await asyncio.sleep(0.02)

    assert store.calls == 0
