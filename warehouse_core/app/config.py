import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PKG_ROOT = Path(__file__).resolve().parents[1]
ENV_FILE = PKG_ROOT.parent / ".env"


class Settings(BaseSettings):
    """Warehouse engine settings, read from WAREHOUSE_* env vars or .env"""

    model_config = SettingsConfigDict(
        env_prefix="WAREHOUSE_",
        env_file=str(ENV_FILE),
        extra="ignore",
    )

    database_url: Optional[str] = None
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Cycle count variance tolerance, absolute units
    variance_tolerance: Decimal = Decimal("0.01")
    # Soft band next to a temperature threshold that yields WARNING
    temperature_warning_margin: Decimal = Decimal("0.05")

    # Comma separated
    cors_origins: str = "http://127.0.0.1:3000,http://localhost:3000"

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def resolved_database_url(self) -> str:
        """
        Explicit WAREHOUSE_DATABASE_URL wins, then plain DATABASE_URL (hosting
        platforms), then a local SQLite file in `data/` next to the package.
        """
        url = self.database_url or os.getenv("DATABASE_URL")
        if url:
            # SQLAlchemy needs the postgresql:// scheme
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            return url

        data_dir = PKG_ROOT / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{(data_dir / 'warehouse_core.db').as_posix()}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
