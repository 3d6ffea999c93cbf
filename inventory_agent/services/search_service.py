"""
Inventory search: semantic lookup with a lexical fallback, rendered as JSON for the model.

Responsibility: Back the item_lookup tool. Always returns a JSON string; any fault while
searching becomes an error payload so the model can answer conversationally instead of
the turn aborting.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from inventory_agent.core.config import DEFAULT_SEARCH_LIMIT

logger = logging.getLogger(__name__)

SearchType = Literal["vector", "text"]


class SearchQuery(BaseModel):
    """Arguments of the item_lookup tool."""

    query: str = Field(..., min_length=1, description="The search query")
    n: int = Field(DEFAULT_SEARCH_LIMIT, gt=0, description="Number of results to return")


@dataclass(frozen=True)
class SearchResult:
    item: dict[str, Any]
    search_type: SearchType
    score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item, "score": self.score, "searchType": self.search_type}


class InventoryCollection(Protocol):
    async def count(self) -> int: ...

    async def similarity_search_with_score(self, query: str, k: int) -> list[tuple[dict[str, Any], float]]: ...

    async def text_search(self, query: str, limit: int) -> list[dict[str, Any]]: ...


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, default=str)


async def search_inventory(query: SearchQuery, inventory: InventoryCollection) -> tuple[list[SearchResult], SearchType] | None:
    """
    Vector search first; fall back to text search when it finds nothing.
    Returns None when the collection is empty.
    """
    total = await inventory.count()
    if total == 0:
        return None
    hits = await inventory.similarity_search_with_score(query.query, query.n)
    if hits:
        return [SearchResult(item=item, score=score, search_type="vector") for item, score in hits], "vector"
    logger.info("[search:search_inventory] vector search empty, falling back to text search query=%r", query.query)
    items = await inventory.text_search(query.query, query.n)
    return [SearchResult(item=item, search_type="text") for item in items[: query.n]], "text"


async def item_lookup(query: SearchQuery, inventory: InventoryCollection) -> str:
    """Run the hybrid search and serialize the outcome for the model. Never raises."""
    logger.info("[search:item_lookup] IN  query=%r n=%d", query.query, query.n)
    try:
        outcome = await search_inventory(query, inventory)
    except Exception as e:
        logger.warning("[search:item_lookup] failed query=%r: %s", query.query, e)
        return _dump({
            "error": "Failed to search inventory",
            "details": str(e),
            "query": query.query,
        })

    if outcome is None:
        logger.info("[search:item_lookup] OUT inventory empty")
        return _dump({
            "error": "No items found in inventory",
            "message": "The inventory database appears to be empty",
            "count": 0,
        })

    results, search_type = outcome
    logger.info("[search:item_lookup] OUT searchType=%s count=%d", search_type, len(results))
    return _dump({
        "results": [r.to_dict() for r in results],
        "searchType": search_type,
        "query": query.query,
        "count": len(results),
    })
