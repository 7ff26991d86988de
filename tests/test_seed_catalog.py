"""Unit tests for the catalog seeding script."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from unittest.mock import MagicMock
from models.product import Product
from seed_catalog import seed_products

PRODUCTS = [
    Product(product_id="p1", name="Scale Cloud", description="Autoscaling", price=299, features=["Autoscaling"]),
    Product(product_id="p2", name="Pipeline CRM", description="Sales pipeline", price=129),
]


class TestSeedProducts:
    """Test suite for seed_products."""

    def test_rows_carry_catalog_position(self):
        store = MagicMock()

        count = seed_products(store, PRODUCTS)

        rows = store.client.table.return_value.upsert.call_args[0][0]
        assert count == 2
        assert [(r["id"], r["position"]) for r in rows] == [("p1", 0), ("p2", 1)]
        assert rows[0]["features"] == ["Autoscaling"]
        store.client.table.return_value.delete.assert_not_called()

    def test_replace_clears_table_first(self):
        store = MagicMock()

        seed_products(store, PRODUCTS, replace=True)

        store.client.table.return_value.delete.assert_called_once()

    def test_empty_catalog_writes_nothing(self):
        store = MagicMock()

        assert seed_products(store, []) == 0
        store.client.table.return_value.upsert.assert_not_called()
