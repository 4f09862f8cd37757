from __future__ import annotations

import requests

from thriftshop.integrations.common import IntegrationError, response_json, upstream_message
from thriftshop.integrations.imaging.base import BackgroundRemovalProvider, CutoutResult


REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"


class RemoveBgProvider(BackgroundRemovalProvider):
    name = "remove.bg"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def remove_background(self, *, image: bytes, filename: str = "image.jpg") -> CutoutResult:
        r = requests.post(
            REMOVE_BG_URL,
            headers={"X-Api-Key": self.api_key},
            files={"image_file": (filename or "image.jpg", image, "image/jpeg")},
            data={"size": "auto", "format": "png"},
            timeout=60,
        )
        if r.status_code < 200 or r.status_code >= 300:
            j = response_json(r)
            raise IntegrationError("REMOVE_BG_FAILED", upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return CutoutResult(image=r.content or b"", content_type=r.headers.get("Content-Type") or "image/png")
