from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ChatUserResult:
    user_id: str
    name: str
    raw: dict | None = None


class ChatProvider:
    name = "unknown"
    api_key = ""

    def upsert_user(self, *, user_id: str, name: str) -> ChatUserResult:
        raise NotImplementedError

    def create_user_token(self, user_id: str) -> str:
        raise NotImplementedError
