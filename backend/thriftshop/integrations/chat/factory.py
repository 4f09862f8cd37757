from __future__ import annotations

from thriftshop.integrations.common import IntegrationMisconfiguredError, env_first, require_live
from thriftshop.integrations.chat.base import ChatProvider
from thriftshop.integrations.chat.mock_provider import MockChatProvider
from thriftshop.integrations.chat.stream_provider import StreamChatProvider


def chat_credentials() -> tuple[str, str]:
    api_key = env_first("STREAM_API_KEY", "STREAM_APP_ID")
    api_secret = env_first("STREAM_API_SECRET", "STREAM_SECRET")
    return api_key, api_secret


def build_chat_provider() -> ChatProvider:
    mode = require_live("chat")
    if mode == "sandbox":
        return MockChatProvider()

    api_key, api_secret = chat_credentials()
    missing = []
    if not api_key:
        missing.append("STREAM_API_KEY")
    if not api_secret:
        missing.append("STREAM_API_SECRET")
    if missing:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:missing {', '.join(missing)}")
    return StreamChatProvider(api_key=api_key, api_secret=api_secret)
