from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EmailResult:
    ok: bool
    code: str = ""
    message: str = ""
    provider_id: str = ""
    raw: dict | None = None


class EmailProvider:
    name = "unknown"

    def send(self, *, to: str, subject: str, html: str, text: str, sender: str) -> EmailResult:
        raise NotImplementedError
