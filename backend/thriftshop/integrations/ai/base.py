from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TranscriptionResult:
    text: str
    raw: dict | None = None


@dataclass
class QueryInterpretation:
    keywords: list[str] = field(default_factory=list)
    intents: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    moods: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    price_range: dict | None = None
    source: str = "local"

    def to_dict(self) -> dict:
        return {
            "keywords": list(self.keywords),
            "intents": list(self.intents),
            "styles": list(self.styles),
            "moods": list(self.moods),
            "categories": list(self.categories),
            "priceRange": dict(self.price_range) if self.price_range else None,
            "source": self.source,
        }


@dataclass
class ImageAnalysis:
    title: str = ""
    category: str = ""
    attributes: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    moods: list[str] = field(default_factory=list)
    intents: list[str] = field(default_factory=list)
    raw: dict | None = None

    def terms(self) -> list[str]:
        out: list[str] = []
        for term in [*self.attributes, *self.styles, *self.moods, *self.intents, self.category, self.title]:
            if term and term not in out:
                out.append(term)
        return out


class AIProvider:
    name = "unknown"
    embedding_model = "text-embedding-3-small"

    def embed(self, text: str) -> list[float]:
        raise NotImplementedError

    def transcribe(self, *, audio: bytes, filename: str = "recording.webm", content_type: str = "audio/webm") -> TranscriptionResult:
        raise NotImplementedError

    def interpret_query(self, query: str) -> QueryInterpretation:
        raise NotImplementedError

    def analyze_image(self, image_url: str) -> ImageAnalysis:
        raise NotImplementedError
