from __future__ import annotations

import os

from thriftshop.integrations.ai.base import AIProvider
from thriftshop.integrations.ai.mock_provider import MockAIProvider
from thriftshop.integrations.ai.openai_provider import OpenAIProvider
from thriftshop.integrations.common import IntegrationMisconfiguredError, require_live


def ai_configured() -> bool:
    mode = (os.getenv("INTEGRATIONS_MODE") or "live").strip().lower()
    if mode == "sandbox":
        return True
    if mode == "disabled":
        return False
    return bool((os.getenv("OPENAI_API_KEY") or "").strip())


def build_ai_provider() -> AIProvider:
    mode = require_live("ai")
    if mode == "sandbox":
        return MockAIProvider()

    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not api_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing OPENAI_API_KEY")
    return OpenAIProvider(
        api_key=api_key,
        chat_model=(os.getenv("OPENAI_CHAT_MODEL") or "gpt-4o-mini").strip(),
        transcription_model=(os.getenv("OPENAI_TRANSCRIPTION_MODEL") or "whisper-1").strip(),
    )
