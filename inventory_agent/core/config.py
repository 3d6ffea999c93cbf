"""
Settings for the inventory agent, read once from the environment (.env supported).

Covers the model and embedding credentials, the Milvus inventory collection, the
checkpoint backend, and the fixed limits of the agent loop and the item_lookup search.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# OpenAI (agent LLM)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0").strip() or 0)

# Hugging Face (query / item embeddings)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = (
    os.getenv("HF_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2").strip()
    or "sentence-transformers/all-MiniLM-L6-v2"
)

# Vector dim for the embedding model (all-MiniLM-L6-v2 = 384)
VECTOR_DIM: int = 384
EMBED_BATCH_SIZE: int = 32

# Milvus Cloud (from env)
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()
INVENTORY_COLLECTION: str = (
    os.getenv("INVENTORY_COLLECTION", "items").strip() or "items"
)

# Checkpoints: "sqlite" (file-backed) or "memory" (process-local)
CHECKPOINT_BACKEND: str = (
    os.getenv("CHECKPOINT_BACKEND", "sqlite").strip().lower() or "sqlite"
)
CHECKPOINT_DB_PATH: str = (
    os.getenv("CHECKPOINT_DB_PATH", "data/checkpoints.db").strip()
    or "data/checkpoints.db"
)

# Agent loop
RECURSION_LIMIT: int = 15
MAX_RETRIES: int = 3
RETRY_BASE_DELAY: float = 1.0
RETRY_MAX_DELAY: float = 30.0

# Inventory search tool
DEFAULT_SEARCH_LIMIT: int = 10
TEXT_SEARCH_FIELDS: tuple[str, ...] = (
    "item_name",
    "item_description",
    "categories",
    "embedding_text",
)
TEXT_SEARCH_SCAN_LIMIT: int = 16_384

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0

# HTTP server
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]
PORT: int = int(os.getenv("PORT", "8000").strip() or 8000)
