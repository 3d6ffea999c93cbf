"""
Vector store client: Milvus Cloud connection, embeddings (HF Inference API), and inventory item storage.

Responsibility: Embed text via all-MiniLM-L6-v2, store furniture items with their vectors,
and answer the two lookups the search tool needs: nearest neighbours with scores and a
case-insensitive substring scan over the item text fields.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from inventory_agent.core.config import (
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_EMBED_MODEL,
    INVENTORY_COLLECTION,
    MILVUS_TOKEN,
    MILVUS_URI,
    TEXT_SEARCH_FIELDS,
    TEXT_SEARCH_SCAN_LIMIT,
    VECTOR_DIM,
)
from inventory_agent.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

HF_API_URL_ROUTER = (
    "https://router.huggingface.co/hf-inference/models/"
    f"{HF_EMBED_MODEL}/pipeline/feature-extraction"
)
HF_API_URL_STANDARD = f"https://api-inference.huggingface.co/models/{HF_EMBED_MODEL}"

VECTOR_FIELD = "vector"
PRIMARY_FIELD = "id"


async def embed_texts(
    texts: list[str],
    batch_size: int | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[list[float]]:
    """
    Batch embed texts using Hugging Face Inference API (all-MiniLM-L6-v2).

    Returns list of 384-dim vectors (normalized for cosine similarity).
    """
    batch_size = batch_size if batch_size is not None else EMBED_BATCH_SIZE
    if not texts:
        return []
    if not HF_API_KEY:
        raise ServiceUnavailableError(
            "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
        )

    headers = {
        "Authorization": f"Bearer {HF_API_KEY}",
        "Content-Type": "application/json",
    }
    all_embeddings: list[list[float]] = []

    async with httpx.AsyncClient(timeout=EMBED_API_TIMEOUT, transport=transport) as client:
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            payload = {"inputs": batch, "options": {"wait_for_model": True}}
            response = await client.post(HF_API_URL_ROUTER, json=payload, headers=headers)
            if response.status_code == 403:
                logger.info("[vector_store:embed_texts] router returned 403, trying standard endpoint")
                response = await client.post(HF_API_URL_STANDARD, json=payload, headers=headers)

            if response.status_code != 200:
                if response.status_code == 503:
                    raise RuntimeError(f"HF model is loading. Retry later. {response.text[:200]}")
                if response.status_code == 401:
                    raise ValueError(
                        "Invalid HF API key. Check HF_API_KEY at https://huggingface.co/settings/tokens"
                    )
                response.raise_for_status()

            result = response.json()
            if isinstance(result, list) and result and isinstance(result[0], list):
                batch_emb = result
            else:
                batch_emb = [
                    item if isinstance(item, list) else [item]
                    for item in (result if isinstance(result, list) else [result])
                ]

            all_embeddings.extend(normalize(vec) for vec in batch_emb)

    return all_embeddings


def normalize(vec: list[float]) -> list[float]:
    """L2-normalize so Milvus COSINE and inner product agree."""
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


def item_embedding_text(item: dict[str, Any]) -> str:
    """Text embedded for an item: its embedding_text, else name + description + categories."""
    text = (item.get("embedding_text") or "").strip()
    if text:
        return text
    categories = item.get("categories") or []
    if isinstance(categories, str):
        categories = [categories]
    parts = [
        str(item.get("item_name") or "").strip(),
        str(item.get("item_description") or "").strip(),
        " ".join(str(c) for c in categories),
    ]
    return " - ".join(p for p in parts if p)


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_field_text(v) for v in value)
    return str(value)


def matches_text(item: dict[str, Any], needle: str, fields: tuple[str, ...] = TEXT_SEARCH_FIELDS) -> bool:
    """Case-insensitive substring match of needle against any of the item's text fields."""
    needle = needle.casefold()
    return any(needle in _field_text(item.get(f)).casefold() for f in fields)


def _payload(entity: dict[str, Any]) -> dict[str, Any]:
    """Item fields as stored, without the raw embedding vector."""
    return {k: v for k, v in entity.items() if k != VECTOR_FIELD}


class MilvusInventory:
    """
    Inventory collection backed by Milvus. Blocking pymilvus calls run in a worker thread
    so the event loop stays free; the client connects lazily on first use.
    """

    def __init__(
        self,
        uri: str = MILVUS_URI,
        token: str = MILVUS_TOKEN,
        collection_name: str = INVENTORY_COLLECTION,
        embed: Callable[[list[str]], Awaitable[list[list[float]]]] = embed_texts,
        client: Any = None,
    ) -> None:
        self.uri = uri
        self.token = token
        self.collection_name = collection_name
        self._embed = embed
        self._client = client

    def get_client(self) -> Any:
        """
        Connect to Milvus Cloud and return a client. Creates the inventory collection
        if it does not exist (dim 384 for all-MiniLM-L6-v2, dynamic fields for item data).
        """
        if self._client is not None:
            return self._client
        if not self.uri or not self.token:
            raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")

        from pymilvus import MilvusClient

        client = MilvusClient(uri=self.uri, token=self.token)
        logger.info("Milvus connection established")
        self._ensure_collection(client)
        self._client = client
        return client

    def _ensure_collection(self, client: Any) -> None:
        if client.has_collection(self.collection_name):
            return
        client.create_collection(
            collection_name=self.collection_name,
            dimension=VECTOR_DIM,
            primary_field_name=PRIMARY_FIELD,
            vector_field_name=VECTOR_FIELD,
            metric_type="COSINE",
            auto_id=True,
            enable_dynamic_field=True,
        )
        logger.info("Collection %s created (dim=%s)", self.collection_name, VECTOR_DIM)

    async def count(self) -> int:
        def _count() -> int:
            client = self.get_client()
            rows = client.query(
                collection_name=self.collection_name,
                filter="",
                output_fields=["count(*)"],
            )
            return int(rows[0]["count(*)"]) if rows else 0

        total = await asyncio.to_thread(_count)
        logger.info("[vector_store:count] collection=%s total=%d", self.collection_name, total)
        return total

    async def similarity_search_with_score(self, query: str, k: int) -> list[tuple[dict[str, Any], float]]:
        """Embed query and return up to k (item, score) pairs, most similar first."""
        logger.info("[vector_store:similarity_search] IN  query=%r k=%d", query, k)
        vectors = await self._embed([query])
        if not vectors:
            logger.warning("[vector_store:similarity_search] embed returned empty")
            return []

        def _search() -> list:
            client = self.get_client()
            return client.search(
                collection_name=self.collection_name,
                data=vectors,
                limit=k,
                output_fields=["*"],
            )

        results = await asyncio.to_thread(_search)
        # results: list of list of hits (one list per query vector)
        hits = results[0] if results else []
        pairs: list[tuple[dict[str, Any], float]] = []
        for h in hits:
            score = float(h.get("distance", h.get("score", 0.0)))
            entity = dict(h.get("entity") or {})
            entity.setdefault(PRIMARY_FIELD, h.get(PRIMARY_FIELD))
            pairs.append((_payload(entity), score))
        logger.info("[vector_store:similarity_search] OUT hits=%d scores=%s",
                    len(pairs), [round(s, 4) for _, s in pairs[:5]])
        return pairs

    async def text_search(
        self,
        query: str,
        limit: int,
        fields: tuple[str, ...] = TEXT_SEARCH_FIELDS,
    ) -> list[dict[str, Any]]:
        """Up to limit items whose text fields contain query, ignoring case."""
        logger.info("[vector_store:text_search] IN  query=%r limit=%d fields=%s", query, limit, fields)

        def _scan() -> list:
            client = self.get_client()
            return client.query(
                collection_name=self.collection_name,
                filter="",
                limit=TEXT_SEARCH_SCAN_LIMIT,
                output_fields=["*"],
            )

        rows = await asyncio.to_thread(_scan)
        if len(rows) >= TEXT_SEARCH_SCAN_LIMIT:
            logger.warning(
                "[vector_store:text_search] scan hit the %d-row cap; items past it are not searched",
                TEXT_SEARCH_SCAN_LIMIT,
            )
        matches = [_payload(r) for r in rows if matches_text(r, query, fields)][:limit]
        logger.info("[vector_store:text_search] OUT scanned=%d matches=%d", len(rows), len(matches))
        return matches

    async def insert_items(self, items: list[dict[str, Any]]) -> int:
        """Embed each item and insert it with its fields. Returns number inserted."""
        if not items:
            return 0
        texts = [item_embedding_text(item) for item in items]
        embeddings = await self._embed(texts)
        rows = []
        for item, text, emb in zip(items, texts, embeddings):
            row = {k: v for k, v in item.items() if k not in (PRIMARY_FIELD, "_id", VECTOR_FIELD)}
            row["embedding_text"] = text
            row[VECTOR_FIELD] = emb
            rows.append(row)

        def _insert() -> None:
            client = self.get_client()
            client.insert(collection_name=self.collection_name, data=rows)
            client.flush(collection_name=self.collection_name)

        await asyncio.to_thread(_insert)
        logger.info("Embedded and stored %d items", len(rows))
        return len(rows)

    async def clear(self) -> None:
        """Drop the collection and recreate it empty."""
        def _drop() -> None:
            client = self.get_client()
            if client.has_collection(self.collection_name):
                client.drop_collection(collection_name=self.collection_name)
                logger.info("Inventory cleared: collection %s dropped", self.collection_name)
            self._ensure_collection(client)

        await asyncio.to_thread(_drop)
