from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CutoutResult:
    image: bytes
    content_type: str = "image/png"
    raw: dict | None = None


class BackgroundRemovalProvider:
    name = "unknown"

    def remove_background(self, *, image: bytes, filename: str = "image.jpg") -> CutoutResult:
        raise NotImplementedError
