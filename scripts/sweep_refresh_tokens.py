import argparse
import asyncio
import datetime as dt

from sessiongate.config import config
from sessiongate.db.refresh_token_store import RefreshTokenStore
from sessiongate.db.session import SessionLocal, engine
from sessiongate.logging import configure_logging, get_logger
from sessiongate.services.token_sweeper import TokenSweeper

logger = get_logger("scripts.sweep_refresh_tokens")


async def sweep(grace_minutes: int) -> int:
    # Only rows expired for longer than the grace period are deleted.
    def clock() -> dt.datetime:
        return dt.datetime.now(dt.timezone.utc) - dt.timedelta(minutes=grace_minutes)

    sweeper = TokenSweeper(RefreshTokenStore(SessionLocal, clock=clock), clock=clock)
    try:
        return await sweeper.run_once()
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete expired refresh tokens.")
    parser.add_argument(
        "--grace-minutes",
        type=int,
        default=0,
        help="Only delete rows that expired at least this many minutes ago.",
    )
    args = parser.parse_args()

    configure_logging(config.LOG_LEVEL, json_output=config.LOG_JSON)
    deleted = asyncio.run(sweep(args.grace_minutes))
    print(f"[sweep] deleted={deleted}")


if __name__ == "__main__":
    main()
