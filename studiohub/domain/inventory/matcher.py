"""Resource tag matcher - substitute equipment sharing a feature tag"""

import logging
from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import ALTERNATIVES_FALLBACK_LIMIT
from ...exceptions import StorageQueryFailed
from ...models import InventoryItem
from .repository import InventoryRepository

logger = logging.getLogger(__name__)


def _normalize(tag: str) -> str:
    return tag.strip().casefold()


def derive_required_tags(items: Iterable[InventoryItem]) -> list[str]:
    """Union of the items' tags, first-seen order, case-insensitively de-duplicated"""
    tags: list[str] = []
    seen: set[str] = set()
    for item in items:
        for tag in item.tags or []:
            key = _normalize(tag)
            if key and key not in seen:
                seen.add(key)
                tags.append(tag.strip())
    return tags


def find_alternatives(
    db: Session,
    required_tags: Iterable[str],
    exclude_ids: Iterable[str] = (),
    limit: int = ALTERNATIVES_FALLBACK_LIMIT,
) -> list[InventoryItem]:
    """Available items sharing at least one tag with ``required_tags``, by name.

    Status is read from storage on every call. Items in ``in_use`` or
    ``maintenance`` are never returned.

    With no usable tags this returns the first ``limit`` available items. That
    pool is a plain fallback, not a ranking of good substitutes.
    """
    wanted = {_normalize(t) for t in required_tags if t and t.strip()}
    excluded = set(exclude_ids)

    try:
        pool = [
            item
            for item in InventoryRepository.list_available_items(db)
            if item.id not in excluded
        ]
    except SQLAlchemyError as e:
        logger.error(f"❌ Failed to load available inventory: {e}")
        raise StorageQueryFailed("Could not load available inventory") from e

    if not wanted:
        return pool[:limit]

    matches = [
        item
        for item in pool
        if wanted.intersection(_normalize(tag) for tag in (item.tags or []))
    ]
    logger.debug(f"🔎 {len(matches)} alternative(s) share tags {sorted(wanted)}")
    return matches
