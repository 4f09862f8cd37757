from __future__ import annotations

import jwt

from thriftshop.integrations.chat.base import ChatProvider, ChatUserResult


class MockChatProvider(ChatProvider):
    name = "mock"

    def __init__(self, api_key: str = "mock-chat-key", secret: str = "mock-chat-secret"):
        self.api_key = api_key
        self.secret = secret
        self.upserted: dict[str, str] = {}

    def upsert_user(self, *, user_id: str, name: str) -> ChatUserResult:
        self.upserted[str(user_id)] = name
        return ChatUserResult(user_id=str(user_id), name=name, raw={"provider": self.name})

    def create_user_token(self, user_id: str) -> str:
        return jwt.encode({"user_id": str(user_id)}, self.secret, algorithm="HS256")
