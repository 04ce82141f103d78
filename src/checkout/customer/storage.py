"""Persistence port for customer details saved between checkouts."""

from abc import ABC, abstractmethod

from checkout.customer.normalization import normalize_customer


class CustomerStorage(ABC):
    """Where opted-in customer details are kept between visits."""

    @abstractmethod
    async def get_saved_customer(self) -> dict | None:
        """Return the saved customer, or None when nothing was saved."""
        ...

    @abstractmethod
    async def save_customer(self, customer: dict) -> None:
        """Persist a customer record."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class InMemoryCustomerStorage(CustomerStorage):
    """Keeps the saved customer under a single key, like browser storage."""

    def __init__(self, key: str = "billingUser") -> None:
        self.key = key
        self._entries: dict[str, dict] = {}
        self.calls: list[dict] = []

    async def get_saved_customer(self) -> dict | None:
        self.calls.append({"method": "get_saved_customer"})
        saved = self._entries.get(self.key)
        return dict(saved) if saved is not None else None

    async def save_customer(self, customer: dict) -> None:
        self.calls.append({"method": "save_customer"})
        self._entries[self.key] = normalize_customer(customer) or {}

    async def clear(self) -> None:
        self._entries.pop(self.key, None)
