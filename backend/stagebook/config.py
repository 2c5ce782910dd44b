from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


class Settings(BaseModel):
    database_url: str = Field(default="sqlite+aiosqlite:///./stagebook.db")
    echo_sql: bool = Field(default=False)
    snapshot_key: str = Field(default="calendar-reservation-system.v1")
    horizon_months: int = Field(default=3, ge=1)
    admin_password: str = Field(default="change-me")
    bulk_yield_every: int = Field(default=20, ge=1)
    seed_demo: bool = Field(default=False)


@lru_cache
def get_settings() -> Settings:
    defaults = Settings.model_fields
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults["database_url"].default),
        echo_sql=bool(int(os.getenv("ECHO_SQL", "0"))),
        snapshot_key=os.getenv("SNAPSHOT_KEY", defaults["snapshot_key"].default),
        horizon_months=int(os.getenv("HORIZON_MONTHS", str(defaults["horizon_months"].default))),
        admin_password=os.getenv("ADMIN_PASSWORD", defaults["admin_password"].default),
        bulk_yield_every=int(os.getenv("BULK_YIELD_EVERY", str(defaults["bulk_yield_every"].default))),
        seed_demo=bool(int(os.getenv("SEED_DEMO", "0"))),
    )
