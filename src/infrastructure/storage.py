"""
Selfie object storage.

Files live in a single bucket directory under ``settings.selfie_dir`` and
are addressed by ``<device id>/selfie_<ms timestamp>_<random>.jpg``.  Public
URLs are derived from the path (not signed); the app mounts the storage
root as static files so those URLs resolve.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from pathlib import Path
from typing import Optional

from starlette.concurrency import run_in_threadpool

from src.domain.errors import ValidationFailure

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
_ALPHABET = string.ascii_lowercase + string.digits


def generate_selfie_path(device_id: Optional[str]) -> str:
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{device_id or 'anonymous'}/selfie_{timestamp}_{suffix}.jpg"


class SelfieStorage:
    def __init__(
        self,
        root: str,
        bucket: str,
        public_base_url: str,
        max_bytes: int = 5 * 1024 * 1024,
    ):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/storage/{self.bucket}/{path}"

    async def save(
        self, device_id: Optional[str], content: bytes, content_type: Optional[str]
    ) -> str:
        """Persist the image and return its public URL."""
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailure(f"Unsupported selfie content type: {content_type}")
        if not content:
            raise ValidationFailure("Selfie file is empty")
        if len(content) > self.max_bytes:
            raise ValidationFailure("Selfie file is too large")
        if device_id and ("/" in device_id or ".." in device_id):
            raise ValidationFailure("Invalid device id")

        path = generate_selfie_path(device_id)
        target = self.bucket_dir / path
        await run_in_threadpool(self._write, target, content)
        logger.info("Stored selfie %s (%d bytes)", path, len(content))
        return self.public_url(path)

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
