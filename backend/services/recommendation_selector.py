"""Recommendation selection over the product catalog."""
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Sequence

from models.conversation import Conversation, VISITOR
from models.product import Product

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3


class RecommendationSelector(ABC):
    """Choose which catalog items to surface for a conversation."""

    def __init__(self, limit: int = DEFAULT_LIMIT):
        if limit < 0:
            raise ValueError("Recommendation limit must be non-negative")
        self.limit = limit

    @abstractmethod
    def select(self, conversation: Conversation, catalog: Sequence[Product]) -> List[Product]:
        """Return at most `limit` products, drawn from `catalog` without repeats."""


class CatalogOrderSelector(RecommendationSelector):
    """Recommend the first products in catalog order."""

    def select(self, conversation: Conversation, catalog: Sequence[Product]) -> List[Product]:
        return list(catalog[: self.limit])


class KeywordMatchSelector(RecommendationSelector):
    """
    Rank products by term overlap with what the visitor has said.

    Products are scored by how many distinct visitor terms appear in their
    name, description, features and category. Ties keep catalog order, and
    unmatched products fill any remaining slots in catalog order, so the
    result is always the same size as CatalogOrderSelector's.
    """

    TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
    STOPWORDS = {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "do",
        "for", "from", "have", "help", "hi", "how", "i", "in", "is", "it",
        "me", "my", "need", "of", "on", "or", "our", "so", "that", "the",
        "this", "to", "we", "what", "with", "you", "your",
    }

    def select(self, conversation: Conversation, catalog: Sequence[Product]) -> List[Product]:
        visitor_terms = self._terms(
            " ".join(turn.content for turn in conversation.turns if turn.role == VISITOR)
        )
        if not visitor_terms:
            return list(catalog[: self.limit])

        scored = []
        for position, product in enumerate(catalog):
            product_text = " ".join(
                [product.name, product.description, product.category or ""] + list(product.features)
            )
            overlap = len(visitor_terms & self._terms(product_text))
            scored.append((-overlap, position, product))

        scored.sort(key=lambda item: (item[0], item[1]))
        selected = [product for _, _, product in scored[: self.limit]]
        logger.debug(f"Keyword match selected {[p.name for p in selected]}")
        return selected

    def _terms(self, text: str) -> set:
        return {
            token for token in self.TOKEN_PATTERN.findall(text.lower())
            if token not in self.STOPWORDS and len(token) > 2
        }


def create_selector(strategy: str, limit: int = DEFAULT_LIMIT) -> RecommendationSelector:
    """Build the selector configured by RECOMMENDATION_STRATEGY."""
    if strategy == "catalog_order":
        return CatalogOrderSelector(limit)
    if strategy == "keyword_match":
        return KeywordMatchSelector(limit)
    raise ValueError(f"Unknown recommendation strategy: {strategy}")
