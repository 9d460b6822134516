from fastapi import HTTPException

from ..auth.jwt import get_current_actor, get_store  # noqa: F401
from ..core.errors import ValidationError
from ..models.ledger import MonthKey
from ..services.storage import StorageService, storage_service


def get_storage() -> StorageService:
    return storage_service


def parse_month_key(value: str) -> MonthKey:
    """Query parameters carry months in the ``<year>-<month>`` marker format."""
    try:
        return MonthKey.parse(value)
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail="Month must look like '<year>-<month 0-11>'") from exc
