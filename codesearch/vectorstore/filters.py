"""
Translation of filter expressions into Qdrant filter predicates.

Supported forms, tried in order (first match wins):

    fileExtension in [".ts", ".py"]   -> OR of equality clauses
    language == "python"              -> single equality clause
    startLine > 10                    -> single range clause (>, >=, <, <=)

Anything else yields None and the query runs unfiltered. The predicate is
a plain dict in Qdrant's REST filter shape; the native adapter validates
it into ``qdrant_client.models.Filter``.
"""

import re
from collections.abc import Callable
from typing import Any

import structlog

from codesearch.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

Predicate = dict[str, Any]
FilterMatcher = Callable[[str], Predicate | None]

_MEMBERSHIP_RE = re.compile(r"(\w+)\s+in\s+\[(.*?)\]")
_EQUALITY_RE = re.compile(r"(\w+)\s*==\s*[\"'](.+?)[\"']")
_COMPARISON_RE = re.compile(r"(\w+)\s*(>=|<=|>|<)\s*(-?\d+)")

_RANGE_KEYS = {">": "gt", ">=": "gte", "<": "lt", "<=": "lte"}


def _match_membership(expr: str) -> Predicate | None:
    match = _MEMBERSHIP_RE.search(expr)
    if not match:
        return None

    field, raw_values = match.groups()
    values = [
        value.strip().replace('"', "").replace("'", "")
        for value in raw_values.split(",")
    ]
    values = [value for value in values if value]
    if not values:
        return None

    return {"should": [{"key": field, "match": {"value": value}} for value in values]}


def _match_equality(expr: str) -> Predicate | None:
    match = _EQUALITY_RE.search(expr)
    if not match:
        return None

    field, value = match.groups()
    return {"must": [{"key": field, "match": {"value": value}}]}


def _match_comparison(expr: str) -> Predicate | None:
    match = _COMPARISON_RE.search(expr)
    if not match:
        return None

    field, op, value = match.groups()
    return {"must": [{"key": field, "range": {_RANGE_KEYS[op]: int(value)}}]}


FILTER_MATCHERS: tuple[FilterMatcher, ...] = (
    _match_membership,
    _match_equality,
    _match_comparison,
)


def translate_filter(
    expr: str | None,
    matchers: tuple[FilterMatcher, ...] = FILTER_MATCHERS,
) -> Predicate | None:
    """
    Translate a filter expression into a Qdrant filter predicate.

    Never raises on malformed input: an expression no matcher accepts is
    logged and treated as "no filter".

    Args:
        expr: Filter expression, may be None or blank
        matchers: Ordered matchers to try

    Returns:
        Predicate dict, or None for no filter
    """
    if expr is None or not expr.strip():
        return None

    for matcher in matchers:
        predicate = matcher(expr)
        if predicate is not None:
            return predicate

    logger.warning("Unable to parse filter expression, searching unfiltered", filter_expr=expr)
    get_metrics().record_filter_fallback()
    return None
