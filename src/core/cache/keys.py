"""
Deterministic cache key construction.

Key layout::

    {prefix}:{operation}[:{scope}...][:{fingerprint}]

`scope` segments are plain identifiers (plan id, user id) kept readable so
invalidation can target them with glob patterns such as
``progress-record:*:{plan_id}:*``. Everything else that shapes a query
(pagination, filters) is folded into a fingerprint: the SHA-1 of the
canonical JSON of the parameters, so equal parameters always produce the
same key regardless of dict ordering.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Optional

from src.core.cache.serialization import json_default

ALL_SCOPE = "all"


def fingerprint(params: Mapping[str, Any]) -> str:
    """SHA-1 hex digest of the canonical JSON form of `params`."""
    canonical = json.dumps(
        params, sort_keys=True, separators=(",", ":"), default=json_default
    )
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def build_cache_key(
    prefix: str,
    operation: str,
    *scope: Optional[Any],
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Build a cache key from a domain prefix, an operation name, scope
    identifiers and optional query parameters.

    A `None` scope segment is written as ``all`` so unscoped listings still
    have a fixed key shape. For example
    ``build_cache_key("progress-record", "list", "p1", "u1", params={"page": 1})``
    yields ``progress-record:list:p1:u1:<sha1>``.
    """
    parts = [prefix, operation]
    parts.extend(ALL_SCOPE if segment is None else str(segment) for segment in scope)
    if params is not None:
        parts.append(fingerprint(params))
    return ":".join(parts)


def build_one_cache_key(prefix: str, entity_id: Any) -> str:
    return f"{prefix}:one:{entity_id}"
