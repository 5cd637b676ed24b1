"""
Hybrid search helpers: request parsing, lexical matching and fusion.

The lexical channel is synthesized from raw text: tokens are
whitespace-separated, lower-cased, and short tokens are dropped. Two
fusion strategies are available (see RerankStrategy):

- majority overlap: keep dense results whose content contains at least
  ceil(n/2) of the n distinct query tokens (a single token must appear)
- lexical boost: add a fixed bonus to results whose content contains the
  whole query text, then re-sort by the adjusted score

Sparse vectors built here are per-document term frequencies with no
corpus statistics; they are an approximate lexical signal only.
"""

import math
from collections import Counter
from dataclasses import replace

from codesearch.vectorstore.base import (
    AnnsField,
    HybridSearchOptions,
    HybridSearchRequest,
    HybridSearchResult,
    RerankStrategy,
    SparseVector,
)
from codesearch.vectorstore.config import VectorStoreConfig


def split_requests(
    requests: list[HybridSearchRequest],
) -> tuple[HybridSearchRequest, HybridSearchRequest | None]:
    """
    Pick the dense and (optional) sparse request out of a hybrid query.

    Raises:
        ValueError: If no dense request is present
    """
    dense = next((r for r in requests if r.anns_field is AnnsField.DENSE), None)
    sparse = next((r for r in requests if r.anns_field is AnnsField.SPARSE), None)

    if dense is None:
        raise ValueError("Dense vector search request is required for hybrid search")

    return dense, sparse


def dense_query_vector(request: HybridSearchRequest) -> list[float]:
    """Extract the query vector from a dense request (bare or wrapped in a list)."""
    data = request.data
    if isinstance(data, str):
        raise ValueError("Dense hybrid search request must carry a vector, not text")
    if data and isinstance(data[0], list):
        return data[0]
    return data


def resolve_limit(
    options: HybridSearchOptions,
    dense_request: HybridSearchRequest,
    default: int,
) -> int:
    """Options limit wins, then the dense request's own limit, then the default."""
    return options.limit or dense_request.limit or default


def tokenize(text: str, min_length: int = 3) -> list[str]:
    """Lower-cased whitespace tokens of at least ``min_length`` characters."""
    return [token for token in text.lower().split() if len(token) >= min_length]


def synthesize_sparse_vector(content: str, min_length: int = 3) -> SparseVector:
    """
    Build a term-frequency sparse vector for one document.

    Index i is the i-th distinct token in order of first occurrence; the
    value is that token's frequency in the document.
    """
    frequencies = Counter(tokenize(content, min_length))
    return SparseVector(
        indices=list(range(len(frequencies))),
        values=[float(count) for count in frequencies.values()],
    )


def matches_majority(content: str, query_text: str, min_length: int = 3) -> bool:
    """
    Check the majority-overlap rule for one document.

    A repeated query word counts once, both toward the threshold and the
    matches.
    """
    tokens = list(dict.fromkeys(tokenize(query_text, min_length)))
    if not tokens:
        return True

    content = content.lower()
    if len(tokens) == 1:
        return tokens[0] in content

    matching = sum(1 for token in tokens if token in content)
    return matching >= math.ceil(len(tokens) / 2)


def majority_overlap(
    results: list[HybridSearchResult],
    query_text: str,
    min_length: int = 3,
) -> list[HybridSearchResult]:
    """Keep results satisfying the majority-overlap rule, in dense order."""
    return [
        result
        for result in results
        if matches_majority(result.document.content, query_text, min_length)
    ]


def lexical_boost(
    results: list[HybridSearchResult],
    query_text: str,
    boost: float = 0.2,
) -> list[HybridSearchResult]:
    """Boost results containing the full query text and re-sort descending."""
    query = query_text.lower().strip()
    if not query:
        return list(results)

    boosted = [
        replace(result, score=result.score + boost)
        if query in result.document.content.lower()
        else result
        for result in results
    ]
    boosted.sort(key=lambda result: result.score, reverse=True)
    return boosted


def apply_rerank(
    results: list[HybridSearchResult],
    query_text: str,
    strategy: RerankStrategy,
    config: VectorStoreConfig,
) -> list[HybridSearchResult]:
    """Fuse dense results with the lexical query using the chosen strategy."""
    if strategy is RerankStrategy.LEXICAL_BOOST:
        return lexical_boost(results, query_text, config.lexical_boost)
    return majority_overlap(results, query_text, config.min_token_length)
