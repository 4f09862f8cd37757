from __future__ import annotations

import requests
import jwt

from thriftshop.integrations.common import IntegrationError, response_json, upstream_message
from thriftshop.integrations.chat.base import ChatProvider, ChatUserResult


STREAM_BASE = "https://chat.stream-io-api.com"


class StreamChatProvider(ChatProvider):
    name = "stream"

    def __init__(self, *, api_key: str, api_secret: str):
        self.api_key = api_key
        self.api_secret = api_secret

    def _server_token(self) -> str:
        return jwt.encode({"server": True}, self.api_secret, algorithm="HS256")

    def upsert_user(self, *, user_id: str, name: str) -> ChatUserResult:
        uid = str(user_id)
        headers = {
            "Authorization": self._server_token(),
            "Stream-Auth-Type": "jwt",
            "Content-Type": "application/json",
        }
        payload = {"users": {uid: {"id": uid, "name": name}}}
        r = requests.post(
            f"{STREAM_BASE}/users",
            params={"api_key": self.api_key},
            headers=headers,
            json=payload,
            timeout=25,
        )
        j = response_json(r)
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError("STREAM_UPSERT_FAILED", upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return ChatUserResult(user_id=uid, name=name, raw=j)

    def create_user_token(self, user_id: str) -> str:
        return jwt.encode({"user_id": str(user_id)}, self.api_secret, algorithm="HS256")
