import asyncio
import contextlib
import datetime as dt

from fastapi import FastAPI

from sessiongate.config import config
from sessiongate.logging import configure_logging, get_logger
from sessiongate.routers import register_routers
from sessiongate.services.session_service import get_session_service
from sessiongate.services.token_sweeper import TokenSweeper

configure_logging(config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = get_logger(__name__)


@contextlib.asynccontextmanager
async def lifespan(_app: FastAPI):
    sweep_task = None
    if config.SWEEP_INTERVAL_HOURS > 0:
        sweeper = TokenSweeper(get_session_service().store)
        interval = dt.timedelta(hours=config.SWEEP_INTERVAL_HOURS)
        sweep_task = asyncio.create_task(sweeper.run_forever(interval))

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task


def create_app() -> FastAPI:
    app = FastAPI(title="sessiongate", lifespan=lifespan)
    mounted = register_routers(app)
    logger.info("app.routers_mounted", routers=mounted)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.FASTAPI_HOST, port=config.FASTAPI_PORT)
