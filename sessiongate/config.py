import datetime as dt
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Database
    DATABASE_URL: str

    # JWT & Security
    JWT_SECRET: str = Field(min_length=32)
    JWT_ALG: str = "HS256"
    JWT_ISSUER: str = "sessiongate-auth"
    ACCESS_TTL_MIN: int = Field(default=15, gt=0)
    REFRESH_TTL_DAYS: int = Field(default=14, gt=0)
    CLOCK_SKEW_SEC: int = Field(default=30, ge=0)

    # Maintenance
    SWEEP_INTERVAL_HOURS: float = Field(default=24, ge=0)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # FastAPI
    FASTAPI_HOST: str = "0.0.0.0"
    FASTAPI_PORT: int = 8000

    @field_validator("JWT_ALG")
    @classmethod
    def _symmetric_only(cls, value: str) -> str:
        if value not in HMAC_ALGORITHMS:
            raise ValueError(f"JWT_ALG must be one of {', '.join(HMAC_ALGORITHMS)}")
        return value

    @property
    def access_ttl(self) -> dt.timedelta:
        return dt.timedelta(minutes=self.ACCESS_TTL_MIN)

    @property
    def refresh_ttl(self) -> dt.timedelta:
        return dt.timedelta(days=self.REFRESH_TTL_DAYS)

    @property
    def async_database_url(self) -> str:
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)


def load_config() -> Config:
    return Config(
        DATABASE_URL=os.environ["DATABASE_URL"],

        JWT_SECRET=os.environ["JWT_SECRET"],
        JWT_ALG=os.getenv("JWT_ALG", "HS256"),
        JWT_ISSUER=os.getenv("JWT_ISSUER", "sessiongate-auth"),
        ACCESS_TTL_MIN=int(os.getenv("ACCESS_TTL_MIN", "15")),
        REFRESH_TTL_DAYS=int(os.getenv("REFRESH_TTL_DAYS", "14")),
        CLOCK_SKEW_SEC=int(os.getenv("CLOCK_SKEW_SEC", "30")),

        SWEEP_INTERVAL_HOURS=float(os.getenv("SWEEP_INTERVAL_HOURS", "24")),

        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_JSON=os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes"),

        FASTAPI_HOST=os.getenv("FASTAPI_HOST", "0.0.0.0"),
        FASTAPI_PORT=int(os.getenv("FASTAPI_PORT", "8000")),
    )


config = load_config()

__all__ = ["Config", "config", "load_config"]
