"""
Catalog models.

Catalog cards come from the Pokemon TCG API and are not owned by this
service, so they stay plain dicts exactly as the API returns them.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

CatalogItem = dict[str, Any]

T = TypeVar("T")

# Price variants in order of preference
PRICE_VARIANTS = ("normal", "holofoil", "reverseHolofoil", "unlimited")


@dataclass(frozen=True, slots=True)
class CachedLookup(Generic[T]):
    """
    A fetched payload stamped with its fetch time (epoch seconds).

    A lookup is only usable while younger than the lifetime for its kind;
    after that it is treated as absent.
    """

    data: T
    timestamp: float

    def is_valid(self, now: float, lifetime: float) -> bool:
        return now - self.timestamp < lifetime

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CachedLookup[Any]":
        return cls(data=raw["data"], timestamp=float(raw["timestamp"]))


def get_market_price(item: CatalogItem) -> float | None:
    """
    Get the TCGplayer market price for a card.

    Uses the first available variant of normal, holofoil, reverse holofoil
    and unlimited. Returns None if the card has no price data.
    """
    prices = (item.get("tcgplayer") or {}).get("prices") or {}
    for variant in PRICE_VARIANTS:
        market = (prices.get(variant) or {}).get("market")
        if market is not None:
            return float(market)
    return None
