from __future__ import annotations

import os
import secrets
from datetime import datetime
from pathlib import Path


# backend/thriftshop/services/media_service.py -> backend/
BACKEND_ROOT = Path(__file__).resolve().parents[2]
PUBLIC_PREFIX = "/api/uploads/"


def media_dir() -> Path:
    raw = (os.getenv("MEDIA_DIR") or "").strip()
    path = Path(raw) if raw else BACKEND_ROOT / "uploads"
    path.mkdir(parents=True, exist_ok=True)
    return path


def processed_image_name() -> str:
    ts = int(datetime.utcnow().timestamp() * 1000)
    return f"processed-{ts}-{secrets.token_hex(4)}.png"


def save_processed_image(data: bytes) -> str:
    """Write a background-removed PNG and return its public path."""
    name = processed_image_name()
    (media_dir() / name).write_bytes(data)
    return PUBLIC_PREFIX + name
