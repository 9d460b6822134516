# hoa_ledger/config.py
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker


class Settings(BaseSettings):
    # --- Database ---
    # All ledger collections live as JSON snapshots in a single key-value table.
    database_url: str = "sqlite:///data/hoa_ledger.db"

    # --- Security / JWT ---
    jwt_secret: str = "dev-secret-please-change"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12  # 12 hours

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:5174"]

    # --- Dues ---
    monthly_fee: Decimal = Decimal("300.00")
    dues_check_interval_seconds: int = 60 * 60

    # --- Uploads ---
    uploads_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # --- Backups ---
    backup_dir: str = "backups/sqlite"

    # --- Logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def uploads_root_path(self) -> Path:
        return Path(self.uploads_dir)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

# Ensure path directory exists (for SQLite)
if settings.database_url.startswith("sqlite:///"):
    db_path = Path(settings.database_url.replace("sqlite:///", "", 1))
    db_path.parent.mkdir(parents=True, exist_ok=True)

# --- SQLAlchemy setup ---
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
