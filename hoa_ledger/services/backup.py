import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)


def _resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    return Path(database_url.replace("sqlite:///", "", 1))


def backup_filename(db_path: Path, label: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """``<db stem>[_<label>]_<UTC timestamp>.sqlite3``; the label is slugged."""
    timestamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%fZ")
    parts = [db_path.stem]
    if label:
        slug = re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")
        if slug:
            parts.append(slug)
    parts.append(timestamp)
    return "_".join(parts) + ".sqlite3"


def perform_sqlite_backup(
    destination_dir: Optional[Path] = None,
    database_url: Optional[str] = None,
    label: Optional[str] = None,
) -> Optional[Path]:
    """Snapshot the ledger's key-value table file with SQLite's online backup API.

    Returns ``None`` for non-SQLite databases or when the file does not exist yet
    (a fresh install has nothing to protect).
    """
    db_path = _resolve_sqlite_path(database_url or settings.database_url)
    if db_path is None:
        logger.info("Database URL is not SQLite; skipping backup.")
        return None

    if not db_path.exists():
        logger.warning("SQLite database file %s does not exist; skipping backup.", db_path)
        return None

    target_dir = destination_dir or Path(settings.backup_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    backup_path = target_dir / backup_filename(db_path, label)

    logger.info("Backing up ledger database %s -> %s", db_path, backup_path)

    source = sqlite3.connect(str(db_path))
    dest = sqlite3.connect(str(backup_path))

    try:
        source.backup(dest)
    finally:
        dest.close()
        source.close()

    return backup_path
