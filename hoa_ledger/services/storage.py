from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..config import settings
from ..core.errors import ValidationError


@dataclass
class StoredFile:
    relative_path: str
    public_path: str
    local_path: Optional[str] = None


class StorageService:
    """Receipt and expense images on the local filesystem."""

    def __init__(self, upload_root: Path, max_bytes: int, public_prefix: str = "uploads") -> None:
        self.upload_root = upload_root
        self.max_bytes = max_bytes
        self.public_prefix = public_prefix.strip("/")

    def _normalize_relative(self, relative_path: str) -> str:
        relative = relative_path.strip().lstrip("/")
        if relative.startswith(self.public_prefix + "/"):
            relative = relative.split("/", 1)[1]
        if ".." in Path(relative).parts:
            raise ValidationError("Invalid upload path.")
        return relative

    def validate_image(self, content: bytes, content_type: Optional[str], allowed_types: Iterable[str]) -> None:
        allowed = set(allowed_types)
        if (content_type or "").lower() not in allowed:
            raise ValidationError(
                "Only JPG, PNG, and HEIC image formats are allowed"
                if "image/heic" in allowed
                else "Upload a PNG or JPG image.",
                content_type=content_type,
            )
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"File size must be less than {self.max_bytes // (1024 * 1024)}MB",
                size=len(content),
            )

    def save_file(self, relative_path: str, content: bytes) -> StoredFile:
        relative = self._normalize_relative(relative_path)
        target_path = self.upload_root / relative
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_bytes(content)
        return StoredFile(
            relative_path=relative,
            public_path=f"{self.public_prefix}/{relative}",
            local_path=str(target_path),
        )

    def delete_file(self, relative_path: str) -> None:
        target_path = self.upload_root / self._normalize_relative(relative_path)
        if target_path.exists():
            target_path.unlink()

    @staticmethod
    def extension_for(file_name: str, content_type: Optional[str]) -> str:
        suffix = Path(file_name or "").suffix.lower()
        if suffix == ".jpeg":
            suffix = ".jpg"
        if suffix:
            return suffix
        return mimetypes.guess_extension(content_type or "") or ".bin"


storage_service = StorageService(settings.uploads_root_path, settings.max_upload_bytes)
