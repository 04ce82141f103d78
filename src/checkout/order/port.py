"""Order submission port and an in-memory implementation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

from checkout.errors import CollaboratorError, ErrorKind
from checkout.order.normalization import normalize_order


@dataclass(frozen=True)
class OrderSubmission:
    """Result of submitting an order to the orders API."""

    success: bool
    order: dict | None = None
    error: str | None = None


class OrderService(ABC):
    """Orders API port."""

    @abstractmethod
    async def create_order(self, order: dict) -> OrderSubmission:
        """Submit an order. Transport failures raise ``CollaboratorError``."""
        ...


class InMemoryOrderService(OrderService):
    """Accepts or rejects orders without any network traffic."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Order could not be created"
        self.raise_error: ErrorKind | None = None
        self.orders: dict[str, dict] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Order could not be created",
        raise_error: ErrorKind | None = None,
    ) -> None:
        """Configure the outcome of subsequent submissions."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    async def create_order(self, order: dict) -> OrderSubmission:
        self.calls.append({"method": "create_order", "order": order})

        if self.raise_error is not None:
            raise CollaboratorError(self.failure_reason, kind=self.raise_error)
        if not self.should_succeed:
            return OrderSubmission(success=False, error=self.failure_reason)

        order_id = order.get("id") or f"ord_{uuid4().hex[:12]}"
        reference = f"REF-{order_id[-6:].upper()}"
        stored = {**order, **normalize_order({**order, "id": order_id, "order_reference": reference})}
        self.orders[order_id] = stored
        return OrderSubmission(success=True, order=stored)
