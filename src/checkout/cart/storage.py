"""Cart persistence port and an in-memory implementation.

The cart is saved as one list of derived items (item fields plus their
configuration) under a single key, so that every cart change is one write.
"""

from abc import ABC, abstractmethod
from copy import deepcopy


class CartStorage(ABC):
    @abstractmethod
    async def load_items(self) -> list[dict]:
        """Return the saved cart items (empty when nothing was saved)."""
        ...

    @abstractmethod
    async def save_items(self, items: list[dict]) -> None:
        """Replace the saved cart items."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class InMemoryCartStorage(CartStorage):
    def __init__(self, key: str = "cart", items: list[dict] | None = None) -> None:
        self.key = key
        self._entries: dict[str, list[dict]] = {}
        if items is not None:
            self._entries[key] = deepcopy(items)
        self.calls: list[dict] = []

    async def load_items(self) -> list[dict]:
        self.calls.append({"method": "load_items"})
        return deepcopy(self._entries.get(self.key, []))

    async def save_items(self, items: list[dict]) -> None:
        self.calls.append({"method": "save_items", "count": len(items)})
        self._entries[self.key] = deepcopy(items)

    async def clear(self) -> None:
        self.calls.append({"method": "clear"})
        self._entries.pop(self.key, None)

    @property
    def saved_items(self) -> list[dict]:
        return deepcopy(self._entries.get(self.key, []))
