from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed

from flask import current_app

from thriftshop.integrations.pricing.base import PricingProvider


DEFAULT_PRICING_LIMIT = 20


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 64) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw) if raw else int(default)
    except ValueError:
        value = int(default)
    return max(minimum, min(value, maximum))


def select_pricing_items(items, limit=None) -> list[dict]:
    """Drop items without an id or title, then cap to ``limit``."""
    try:
        cap = int(limit) if limit else DEFAULT_PRICING_LIMIT
    except (TypeError, ValueError):
        cap = DEFAULT_PRICING_LIMIT
    cap = max(0, cap)
    valid = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        if not item.get("id") or not str(item.get("title") or "").strip():
            continue
        valid.append({"id": item.get("id"), "title": str(item.get("title")).strip()})
    return valid[:cap]


def lookup_prices(provider: PricingProvider, items: list[dict], *, max_workers: int | None = None) -> list[dict]:
    """Look up sold prices for every item in parallel.

    A failed lookup drops its item; the batch never fails as a whole. Output
    keeps the input order.
    """
    if not items:
        return []
    workers = max_workers or _env_int("PRICING_MAX_WORKERS", 8)
    workers = max(1, min(int(workers), len(items)))
    logger = current_app.logger
    results: dict[int, dict] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pricing") as pool:
        futures = {pool.submit(provider.sold_price_summary, item["title"]): idx for idx, item in enumerate(items)}
        for future in as_completed(futures):
            idx = futures[future]
            item = items[idx]
            try:
                summary = future.result()
            except Exception as e:
                logger.warning("pricing_lookup_failed item_id=%s detail=%s", item.get("id"), str(e)[:200])
                continue
            results[idx] = {
                "id": item["id"],
                "title": item["title"],
                "pricing": summary.to_dict() if summary is not None else None,
            }
    ordered = [results[i] for i in sorted(results)]
    logger.info("pricing_lookup_done requested=%s returned=%s workers=%s", len(items), len(ordered), workers)
    return ordered
