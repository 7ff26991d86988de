"""Product catalog data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Product:
    """Catalog entry. Read-only from the assistant's perspective."""
    product_id: str
    name: str
    description: str
    price: float
    features: List[str] = field(default_factory=list)
    category: Optional[str] = None
