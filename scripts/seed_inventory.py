#!/usr/bin/env python3
"""
Seed the inventory collection for demos or tests.

Reads a JSON file holding a list of furniture items, embeds each item's embedding_text
(or its name, description and categories when that is missing) and inserts them into the
Milvus collection. Use --reset to drop existing items first.

Run from project root:

    python scripts/seed_inventory.py data/items.json
    python scripts/seed_inventory.py data/items.json --reset

Each item is a JSON object, e.g.:

    {"item_id": "F-001", "item_name": "Harbor Sofa", "item_description": "Three-seat red velvet sofa",
     "categories": ["sofa", "living room"], "prices": {"full_price": 899, "sale_price": 749}}
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Project root on path so "inventory_agent" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from inventory_agent.services.vector_store import MilvusInventory


def load_items(path: Path) -> list[dict]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items") or []
    if not isinstance(data, list) or not all(isinstance(i, dict) for i in data):
        raise ValueError(f"{path} must hold a JSON list of item objects")
    return data


async def seed(path: Path, reset: bool) -> int:
    inventory = MilvusInventory()
    if reset:
        await inventory.clear()
        print("Cleared existing inventory.")
    items = load_items(path)
    inserted = await inventory.insert_items(items)
    for item in items:
        print(f"  added: {item.get('item_name') or item.get('item_id') or '<unnamed>'}")
    return inserted


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the furniture inventory collection.")
    parser.add_argument("items", type=Path, help="JSON file with a list of inventory items.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop all existing items before inserting.",
    )
    args = parser.parse_args()

    inserted = asyncio.run(seed(args.items, args.reset))
    print(f"Done. Seeded {inserted} items.")


if __name__ == "__main__":
    main()
