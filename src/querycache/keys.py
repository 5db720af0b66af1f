"""Deterministic cache keys for logical queries.

A key is the compact JSON array ``[scope, operation, params]``. Each part is
JSON-encoded on its own, so colons inside a scope or operation can never make
two different queries collide. Params are sorted by key, so parameter order
never changes the key, and parameters set to None are dropped so that an
omitted filter and an explicit None share an entry.

Scopes and operations still appear verbatim inside the key, so substring
invalidation keeps working (``cache.clear("user:42")``).

Examples::

    build_query_key("courses", {"level": "B2", "language": "es"})
    # '[null,"courses",{"language":"es","level":"B2"}]'

    build_query_key("progress", {"course_id": 7}, scope="user:42")
    # '["user:42","progress",{"course_id":7}]'
"""

import hashlib
import json
from typing import Any, Dict, Optional


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _drop_none(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not params:
        return {}
    return {k: v for k, v in params.items() if v is not None}


def canonical_params(params: Optional[Dict[str, Any]]) -> str:
    """Serialize query parameters to a stable string.

    Args:
        params: Parameter dict (values must be JSON-serializable or str()-able)

    Returns:
        Compact sorted-key JSON, or "" when there are no parameters
    """
    cleaned = _drop_none(params)
    if not cleaned:
        return ""
    return _dumps(cleaned)


def digest_params(params: Optional[Dict[str, Any]]) -> str:
    """Compute stable sha256 hash of the canonical parameters.

    Args:
        params: Parameter dict

    Returns:
        Hex digest string
    """
    return hashlib.sha256(canonical_params(params).encode()).hexdigest()


def build_query_key(
    operation: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    scope: Optional[str] = None,
    digest: bool = False,
) -> str:
    """Build the cache key for one logical query.

    Args:
        operation: Query name, e.g. "courses" or "batch:academy_courses"
        params: Every parameter that affects the result (filters, paging, ids)
        scope: Tenant/user qualifier, e.g. "user:42"
        digest: Hash the parameters instead of embedding them (large id lists)

    Returns:
        Cache key string

    Raises:
        ValueError: If operation is empty
    """
    if not operation:
        raise ValueError("operation must be a non-empty string")

    cleaned = _drop_none(params)
    body: Any = digest_params(cleaned) if digest and cleaned else cleaned
    return _dumps([scope or None, operation, body])
