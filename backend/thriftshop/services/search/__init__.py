from thriftshop.services.search.similarity import cosine_scores, cosine_similarity, match_listings_by_mood
from thriftshop.services.search.interpret import interpret_query, local_interpret_query
from thriftshop.services.search.semantic_search import embedding_search, search_with_interpretation, semantic_search
from thriftshop.services.search.term_search import (
    extract_term_groups,
    merge_term_groups,
    search_listings_by_terms,
    terms_to_groups,
)

__all__ = [
    "cosine_scores",
    "cosine_similarity",
    "match_listings_by_mood",
    "interpret_query",
    "local_interpret_query",
    "embedding_search",
    "search_with_interpretation",
    "semantic_search",
    "extract_term_groups",
    "merge_term_groups",
    "search_listings_by_terms",
    "terms_to_groups",
]
