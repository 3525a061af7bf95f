"""Response encoding for the contest wire format.

Keeping the envelope shape here prevents drift between the router and any
tooling that needs to produce the same bodies.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Union

from core.envelope import as_int

# Recommendation slot mandated by the contest wire format.
RECOMMENDATION_SLOT = "3"

ITEM_UPDATE_ACK = "item_update successful"
IMPRESSION_ACK = "handle impression eventNotification successful"
CLICK_ACK = "handle click eventNotification successful"

RecommendationIds = Union[None, str, Iterable[Any]]


def _ids_from_text(text: str) -> List[Any]:
    text = text.strip()
    if not text:
        return []
    if not text.startswith("["):
        text = f"[{text}]"
    try:
        parsed = json.loads(text)
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def normalize_ids(ids: RecommendationIds) -> List[int]:
    """Return the integer ids in ``ids``, in order, dropping anything else."""

    if ids is None:
        return []
    if isinstance(ids, (str, bytes)):
        text = ids.decode("utf-8", errors="replace") if isinstance(ids, bytes) else ids
        candidates: Iterable[Any] = _ids_from_text(text)
    else:
        try:
            candidates = list(ids)
        except TypeError:
            candidates = [ids]
    normalized: List[int] = []
    for candidate in candidates:
        value = as_int(candidate)
        if value is not None:
            normalized.append(value)
    return normalized


def encode_recommendations(ids: RecommendationIds = None) -> str:
    """Encode recommended item ids as ``{"recs": {"ints": {"3": [...]}}}``.

    Accepts None, a bracketed or unbracketed comma list, or any iterable of
    ids. Always returns well-formed JSON; bad input encodes as ``[]``.
    """

    return json.dumps({"recs": {"ints": {RECOMMENDATION_SLOT: normalize_ids(ids)}}})


def empty_recommendations() -> str:
    return encode_recommendations(None)
