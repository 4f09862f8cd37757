from __future__ import annotations

import os

from thriftshop.integrations.common import IntegrationMisconfiguredError, require_live
from thriftshop.integrations.imaging.base import BackgroundRemovalProvider
from thriftshop.integrations.imaging.mock_provider import MockBackgroundRemovalProvider
from thriftshop.integrations.imaging.removebg_provider import RemoveBgProvider


def build_background_provider() -> BackgroundRemovalProvider:
    mode = require_live("imaging")
    if mode == "sandbox":
        return MockBackgroundRemovalProvider()

    api_key = (os.getenv("REMOVE_BG_KEY") or "").strip()
    if not api_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing REMOVE_BG_KEY")
    return RemoveBgProvider(api_key=api_key)
