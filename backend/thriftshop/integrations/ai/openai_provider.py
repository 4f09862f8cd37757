from __future__ import annotations

import json
import re

import requests

from thriftshop.integrations.ai.base import AIProvider, ImageAnalysis, QueryInterpretation, TranscriptionResult
from thriftshop.integrations.common import IntegrationError, response_json, upstream_message


OPENAI_BASE = "https://api.openai.com/v1"

INTERPRET_PROMPT = """You are a search assistant for a vintage and secondhand marketplace.
Analyze this search query and extract structured information to help find relevant items.

Search query: "{query}"

Extract keywords (brands, materials, objects), intents ("gifting", "selfish", "home-decor",
"collection", "functional"), styles ("vintage", "retro", "mid-century", "bohemian", "modern",
"whimsical", "minimalist", "rustic", "industrial", "art-deco"), moods ("cozy", "elegant",
"playful", "romantic", "edgy", "serene", "nostalgic", "quirky", "sophisticated"), categories
("Kitchen & Dining", "Home Decor", "Collectibles", "Books & Media", "Furniture", "Art",
"Electronics", "Fashion", "Jewelry", "Toys & Games", "Sports & Outdoors") and a priceRange
when price is mentioned.

"collectible" maps to categories ["Collectibles"] and/or intents ["collection"]. Do not put
"collectible" or "gift" in keywords.

Return ONLY valid JSON:
{{"keywords": [], "intents": [], "styles": [], "moods": [], "categories": [], "priceRange": {{"min": 0, "max": 50}}}}"""

VISION_PROMPT = """Describe this secondhand item for search. Return ONLY valid JSON:
{"title": "", "category": "", "attributes": [], "styles": [], "moods": [], "intents": []}
attributes are concrete materials, colors, objects and brands."""

_JSON_BLOCK = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_JSON_OBJECT = re.compile(r"(\{[\s\S]*\})")


def extract_json_object(content: str) -> dict:
    text = (content or "").strip()
    match = _JSON_BLOCK.search(text) or _JSON_OBJECT.search(text)
    if not match:
        raise ValueError("no JSON object in model output")
    parsed = json.loads(match.group(1))
    if not isinstance(parsed, dict):
        raise ValueError("model output is not an object")
    return parsed


def _str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v or "").strip()]


def _price_range(value) -> dict | None:
    if not isinstance(value, dict):
        return None
    out = {}
    for key in ("min", "max"):
        raw = value.get(key)
        if raw is None:
            continue
        try:
            out[key] = float(raw)
        except (TypeError, ValueError):
            continue
    return out or None


class OpenAIProvider(AIProvider):
    name = "openai"

    def __init__(self, *, api_key: str, chat_model: str = "gpt-4o-mini", transcription_model: str = "whisper-1"):
        self.api_key = api_key
        self.chat_model = chat_model
        self.transcription_model = transcription_model

    def _headers(self, json_body: bool = True) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _post_json(self, path: str, payload: dict, code: str) -> dict:
        r = requests.post(f"{OPENAI_BASE}{path}", headers=self._headers(), json=payload, timeout=25)
        j = response_json(r)
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError(code, upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return j

    def _chat(self, messages: list, code: str, max_tokens: int = 500) -> str:
        payload = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": 0.3,
            "max_tokens": max_tokens,
        }
        j = self._post_json("/chat/completions", payload, code)
        try:
            return str(j["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError) as e:
            raise IntegrationError(code, f"unexpected completion shape: {e}", raw=j) from e

    def embed(self, text: str) -> list[float]:
        j = self._post_json("/embeddings", {"model": self.embedding_model, "input": text}, "OPENAI_EMBEDDING_FAILED")
        data = j.get("data") or []
        if not data or not isinstance(data[0], dict):
            return []
        return [float(x) for x in (data[0].get("embedding") or [])]

    def transcribe(self, *, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm") -> TranscriptionResult:
        files = {"file": (filename, audio, content_type or "audio/webm")}
        data = {"model": self.transcription_model, "language": "en"}
        r = requests.post(
            f"{OPENAI_BASE}/audio/transcriptions",
            headers=self._headers(json_body=False),
            files=files,
            data=data,
            timeout=60,
        )
        j = response_json(r)
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError("OPENAI_TRANSCRIBE_FAILED", upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return TranscriptionResult(text=str(j.get("text") or ""), raw=j)

    def interpret_query(self, query: str) -> QueryInterpretation:
        content = self._chat(
            [{"role": "user", "content": INTERPRET_PROMPT.format(query=query)}],
            "OPENAI_INTERPRET_FAILED",
        )
        try:
            parsed = extract_json_object(content)
        except ValueError as e:
            raise IntegrationError("OPENAI_INTERPRET_FAILED", f"Could not parse model response: {e}") from e
        return QueryInterpretation(
            keywords=_str_list(parsed.get("keywords")),
            intents=_str_list(parsed.get("intents")),
            styles=_str_list(parsed.get("styles")),
            moods=_str_list(parsed.get("moods")),
            categories=_str_list(parsed.get("categories")),
            price_range=_price_range(parsed.get("priceRange")),
            source="openai",
        )

    def analyze_image(self, image_url: str) -> ImageAnalysis:
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": VISION_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        content = self._chat(messages, "OPENAI_VISION_FAILED", max_tokens=400)
        try:
            parsed = extract_json_object(content)
        except ValueError as e:
            raise IntegrationError("OPENAI_VISION_FAILED", f"Could not parse model response: {e}") from e
        return ImageAnalysis(
            title=str(parsed.get("title") or "").strip(),
            category=str(parsed.get("category") or "").strip(),
            attributes=_str_list(parsed.get("attributes")),
            styles=_str_list(parsed.get("styles")),
            moods=_str_list(parsed.get("moods")),
            intents=_str_list(parsed.get("intents")),
            raw=parsed,
        )
