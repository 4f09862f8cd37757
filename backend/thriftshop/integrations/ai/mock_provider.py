from __future__ import annotations

import hashlib
import math

from thriftshop.integrations.ai.base import AIProvider, ImageAnalysis, QueryInterpretation, TranscriptionResult


MOCK_EMBEDDING_DIMENSIONS = 32


class MockAIProvider(AIProvider):
    """Deterministic stand-in. Equal texts embed to equal unit vectors."""

    name = "mock"

    def embed(self, text: str) -> list[float]:
        digest = hashlib.sha256((text or "").strip().lower().encode("utf-8")).digest()
        values = [(digest[i % len(digest)] / 255.0) - 0.5 for i in range(MOCK_EMBEDDING_DIMENSIONS)]
        norm = math.sqrt(sum(v * v for v in values)) or 1.0
        return [v / norm for v in values]

    def transcribe(self, *, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm") -> TranscriptionResult:
        return TranscriptionResult(text="mock transcript", raw={"bytes": len(audio or b"")})

    def interpret_query(self, query: str) -> QueryInterpretation:
        from thriftshop.services.search.interpret import local_interpret_query

        return local_interpret_query(query)

    def analyze_image(self, image_url: str) -> ImageAnalysis:
        return ImageAnalysis(raw={"image_url": image_url})
