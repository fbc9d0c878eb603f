from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "pos"
    POSTGRES_USER: str = "pos"
    POSTGRES_PASSWORD: str = "pos"
    # Overrides the POSTGRES_* values, e.g. sqlite:///./pos.db for a single till
    DATABASE_URL: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    SERVICE_VERSION: str = "1.0.0"
    RUN_MIGRATIONS: bool = True

    # When set, paid orders are reported to the CRM over HTTP instead of the local ledger
    CUSTOMERS_SERVICE_URL: Optional[str] = None
    NOTIFIER_WORKERS: int = 2

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
