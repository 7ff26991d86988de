"""Unit tests for catalog loading."""
import json
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.catalog import DEFAULT_CATALOG_PATH, load_catalog, product_from_dict


class TestCatalog:
    """Test suite for catalog loading."""

    def test_bundled_catalog(self):
        products = load_catalog(DEFAULT_CATALOG_PATH)

        assert len(products) >= 3
        assert len({p.product_id for p in products}) == len(products)
        assert all(p.price >= 0 for p in products)

    def test_file_order_is_preserved(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([
            {"name": "B", "description": "second", "price": 2},
            {"name": "A", "description": "first", "price": 1},
        ]))

        products = load_catalog(path)

        assert [p.name for p in products] == ["B", "A"]
        assert [p.product_id for p in products] == ["prod_1", "prod_2"]

    def test_optional_fields(self):
        product = product_from_dict({"id": "x", "name": " Widget ", "price": "9.5"}, 0)

        assert product.product_id == "x"
        assert product.name == "Widget"
        assert product.price == 9.5
        assert product.description == ""
        assert product.features == []
        assert product.category is None

    @pytest.mark.parametrize("entry", [
        {"description": "no name", "price": 1},
        {"name": "  ", "price": 1},
        {"name": "Bad", "price": -1},
    ])
    def test_invalid_entries(self, entry):
        with pytest.raises(ValueError):
            product_from_dict(entry, 0)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps({"name": "A"}))

        with pytest.raises(ValueError, match="JSON array"):
            load_catalog(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing.json")
