from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from sessiongate.config import config


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, future=True)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=AsyncSession)


engine = build_engine(config.async_database_url)
SessionLocal = build_sessionmaker(engine)


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return SessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
