"""Authorized product universe. Generation may only talk about these products."""

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class Objection:
    trigger: str
    answer: str


@dataclass(frozen=True)
class Media:
    id: str
    media_type: str  # image, video
    url: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    short_description: str = ""
    long_description: str = ""
    price: float = 0.0
    keywords: List[str] = field(default_factory=list)
    objections: List[Objection] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)


class KnowledgeBase:
    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._lock = threading.Lock()
        self._products: dict[str, Product] = {}
        if products:
            self.load_products(products)

    def load_products(self, products: Iterable[Product]) -> None:
        """Replace the whole catalogue."""
        catalogue = {product.id: product for product in products}
        with self._lock:
            self._products = catalogue

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def is_valid_product(self, product_id: Optional[str]) -> bool:
        return bool(product_id) and product_id in self._products

    def get_all_products(self) -> List[Product]:
        return list(self._products.values())

    def search_by_keyword(self, keyword: str) -> List[Product]:
        needle = keyword.lower()
        return [
            product
            for product in self._products.values()
            if any(needle in candidate.lower() for candidate in product.keywords)
        ]
