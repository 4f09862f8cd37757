from __future__ import annotations

import numpy as np

from thriftshop.models import Listing


def cosine_scores(query, candidates) -> np.ndarray:
    """Cosine similarity of ``query`` against each row of ``candidates``.

    Rows with a different dimension or a zero norm score 0.0.
    """
    q = np.asarray(query if query is not None else [], dtype=np.float64).ravel()
    rows = list(candidates or [])
    scores = np.zeros(len(rows), dtype=np.float64)
    q_norm = np.linalg.norm(q)
    if q.size == 0 or q_norm == 0.0 or not rows:
        return scores
    usable = [i for i, row in enumerate(rows) if row is not None and len(row) == q.size]
    if not usable:
        return scores
    matrix = np.asarray([rows[i] for i in usable], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(norms > 0.0, dots / (norms * q_norm), 0.0)
    scores[usable] = sims
    return scores


def cosine_similarity(a, b) -> float:
    return float(cosine_scores(a, [b])[0])


def match_listings_by_mood(query_embedding, match_threshold: float = 0.7, match_count: int = 50) -> list[dict]:
    """Rank active listings by cosine similarity to ``query_embedding``.

    Keeps listings strictly above ``match_threshold``, highest first, at most
    ``match_count``. Listings without a stored embedding of the same
    dimension never match.
    """
    count = max(0, int(match_count))
    if not query_embedding or count == 0:
        return []
    rows = Listing.query.filter(Listing.status == "active", Listing.embedding.isnot(None)).all()
    if not rows:
        return []
    scores = cosine_scores(query_embedding, [listing.embedding_vector() for listing in rows])
    keep = np.flatnonzero(scores > float(match_threshold))
    ranked = keep[np.argsort(-scores[keep], kind="stable")][:count]
    return [
        {"id": int(rows[i].id), "similarity": round(float(scores[i]), 6), "listing": rows[i]}
        for i in ranked
    ]
