from __future__ import annotations

from thriftshop.integrations.common import IntegrationError
from thriftshop.integrations.imaging.base import BackgroundRemovalProvider, CutoutResult


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class MockBackgroundRemovalProvider(BackgroundRemovalProvider):
    name = "mock"

    def __init__(self):
        self.calls: list[int] = []

    def remove_background(self, *, image: bytes, filename: str = "image.jpg") -> CutoutResult:
        if not image:
            raise IntegrationError("REMOVE_BG_FAILED", "empty image", status=400)
        self.calls.append(len(image))
        return CutoutResult(image=PNG_SIGNATURE + image, raw={"mock": True})
