"""Product catalog loading from JSON files."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from models.product import Product

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "products.json"


def product_from_dict(data: Dict[str, Any], position: int) -> Product:
    """
    Build a Product from a catalog entry.

    Args:
        data: Mapping with name, description, price and optional id,
            features and category
        position: Index in the catalog, used for a stable id when none is given

    Raises:
        ValueError: If the name is missing or the price is negative
    """
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError(f"Catalog entry {position} has no name")

    price = float(data.get("price", 0))
    if price < 0:
        raise ValueError(f"Catalog entry '{name}' has a negative price")

    return Product(
        product_id=str(data.get("id") or f"prod_{position + 1}"),
        name=name,
        description=data.get("description") or "",
        price=price,
        features=list(data.get("features") or []),
        category=data.get("category"),
    )


def load_catalog(path: Union[str, Path] = DEFAULT_CATALOG_PATH) -> List[Product]:
    """
    Load products from a JSON array file, preserving file order.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a JSON array or an entry is invalid
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        entries = json.load(f)

    if not isinstance(entries, list):
        raise ValueError(f"Catalog file {path} must contain a JSON array")

    products = [product_from_dict(entry, i) for i, entry in enumerate(entries)]
    logger.info(f"Loaded {len(products)} products from {path}")
    return products
