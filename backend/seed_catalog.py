"""
Catalog Seeding Script for the Lead Qualification Assistant.

This script:
1. Loads products from a JSON file (default: data/products.json)
2. Optionally clears the existing Supabase products table
3. Inserts the products in file order, which becomes catalog order

Usage:
    python seed_catalog.py [--file PATH] [--replace]
"""
import argparse
import sys
import logging
from pathlib import Path
from typing import List

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from models.product import Product
from services.catalog import DEFAULT_CATALOG_PATH, load_catalog
from services.supabase_store import SupabaseSignalStore

logger = logging.getLogger(__name__)


def seed_products(store: SupabaseSignalStore, products: List[Product], replace: bool = False) -> int:
    """
    Insert products into the products table.

    Args:
        store: Supabase-backed store
        products: Products in catalog order
        replace: Delete existing rows first

    Returns:
        Number of products written
    """
    table = store.client.table("products")
    if replace:
        logger.info("Clearing existing products...")
        table.delete().neq("id", "").execute()

    rows = [
        {
            "id": product.product_id,
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "features": product.features,
            "category": product.category,
            "position": position,
        }
        for position, product in enumerate(products)
    ]
    if rows:
        table.upsert(rows).execute()
    return len(rows)


def main(argv=None):
    """Main seeding process."""
    parser = argparse.ArgumentParser(description="Seed the product catalog")
    parser.add_argument("--file", default=str(DEFAULT_CATALOG_PATH), help="JSON catalog file")
    parser.add_argument("--replace", action="store_true", help="Delete existing products first")
    args = parser.parse_args(argv)

    try:
        products = load_catalog(args.file)
        if not products:
            logger.error(f"No products found in {args.file}")
            sys.exit(1)

        store = SupabaseSignalStore()
        count = seed_products(store, products, replace=args.replace)
        logger.info(f"✓ Seeded {count} products")

    except KeyboardInterrupt:
        logger.warning("Seeding interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Seeding failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
