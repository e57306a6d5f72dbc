"""Catalog lookup port.

The product catalogue is owned by another service. Order placement only
needs a product's current display name and unit price, which it snapshots
onto the line item; what happens to the catalogue entry afterwards is of no
concern to the order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from orders.errors import NotFound
from orders.shared.money import to_amount


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    unit_price: Decimal

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Catalog entries need a name")
        object.__setattr__(self, "unit_price", to_amount(self.unit_price))


class CatalogLookup(ABC):
    @abstractmethod
    def resolve(self, product_ref) -> CatalogEntry:
        """Return the current name and unit price, or raise ``NotFound``."""


class InMemoryCatalog(CatalogLookup):
    """Dictionary-backed catalog for local runs and tests."""

    def __init__(self, entries=None):
        self._entries = {}
        for product_ref, (name, unit_price) in (entries or {}).items():
            self.put(product_ref, name, unit_price)

    def put(self, product_ref, name, unit_price):
        self._entries[str(product_ref)] = CatalogEntry(name=name, unit_price=unit_price)

    def remove(self, product_ref):
        self._entries.pop(str(product_ref), None)

    def resolve(self, product_ref) -> CatalogEntry:
        try:
            return self._entries[str(product_ref)]
        except KeyError:
            raise NotFound("Product", product_ref) from None
