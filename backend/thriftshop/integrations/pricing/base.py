from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class PriceSummary:
    min_price: float
    max_price: float
    avg_price: int
    recent_sales: int

    def to_dict(self) -> dict:
        return {
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "avgPrice": self.avg_price,
            "recentSales": self.recent_sales,
        }


def summarize_prices(prices) -> PriceSummary | None:
    positive = []
    for raw in prices or []:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if value > 0:
            positive.append(value)
    if not positive:
        return None
    return PriceSummary(
        min_price=min(positive),
        max_price=max(positive),
        # halves round up: 12.5 -> 13
        avg_price=int(math.floor(sum(positive) / len(positive) + 0.5)),
        recent_sales=len(positive),
    )


class PricingProvider:
    name = "unknown"

    def sold_price_summary(self, query: str) -> PriceSummary | None:
        raise NotImplementedError
