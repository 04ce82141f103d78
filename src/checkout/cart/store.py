"""Cart store: the single owner of checkout state.

Holds the cart aggregate (items and their configurations) together with the
customer, billing and payment slices of the checkout. The store is passed
explicitly to whoever needs it; nothing looks it up globally.

Every mutating operation:

* runs under one cart-wide ``asyncio.Lock``, so overlapping calls never
  interleave their read-modify-write cycles;
* persists the cart with a single ``save_items`` call;
* returns an ``OperationResult`` and never raises. On failure the previous
  state is restored and the error is kept in ``operation_error``.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from copy import deepcopy
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError

from checkout.cart.cart import ShoppingCart
from checkout.cart.configuration import is_configured
from checkout.cart.storage import CartStorage, InMemoryCartStorage
from checkout.config import CheckoutSettings, get_settings
from checkout.customer.normalization import canonical_fields, normalize_customer
from checkout.customer.storage import CustomerStorage, InMemoryCustomerStorage
from checkout.errors import CollaboratorError, ErrorKind, OperationResult
from checkout.order.normalization import PaymentStatusCode, normalize_order, normalize_order_item
from checkout.order.port import InMemoryOrderService, OrderService
from checkout.utils.merge import deep_merge

logger = structlog.get_logger(__name__)

# Fields of a derived item that belong to the item itself; everything else is configuration
ITEM_FIELDS = ("id", "title", "service_type", "price", "quantity")

# Source spellings of item fields, never treated as configuration
_ITEM_ALIASES = frozenset(
    {
        "_id",
        "item_id",
        "itemId",
        "name",
        "serviceType",
        "type",
        "service",
        "cardDetails",
        "testDetails",
        "courseDetails",
        "qualificationDetails",
        "recipient",
        "recipientId",
        "recipientName",
        "assigned_to",
        "assignedTo",
        "scheduledDate",
        "configuration",
    }
)

Listener = Callable[[dict], None]


def _new_draft_id() -> str:
    return f"draft-{uuid4().hex[:12]}"


def split_item(item: Mapping) -> tuple[dict, dict]:
    """Split a derived item into its own fields and its configuration."""
    fields = {key: item.get(key) for key in ITEM_FIELDS}
    configuration = {key: deepcopy(value) for key, value in item.items() if key not in ITEM_FIELDS}
    return fields, configuration


def _canonical_item(raw: Mapping) -> dict:
    """Normalize an incoming item, keeping any configuration it already carries."""
    normalized = normalize_order_item(raw)
    configuration = {
        key: deepcopy(value) for key, value in raw.items() if key not in normalized and key not in _ITEM_ALIASES
    }
    configuration.update({key: value for key, value in normalized.items() if key not in ITEM_FIELDS})
    nested = raw.get("configuration")
    if isinstance(nested, Mapping):
        configuration = deep_merge(configuration, nested)
    return {**configuration, **{key: normalized.get(key) for key in ITEM_FIELDS}}


class CartStore:
    def __init__(
        self,
        storage: CartStorage | None = None,
        order_service: OrderService | None = None,
        customer_storage: CustomerStorage | None = None,
        settings: CheckoutSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.storage = storage or InMemoryCartStorage(self.settings.cart_storage_key)
        self.order_service = order_service or InMemoryOrderService()
        self.customer_storage = customer_storage or InMemoryCustomerStorage(self.settings.customer_storage_key)

        self.cart = ShoppingCart.create()
        self._customer: dict = {}
        self._billing: dict = {}
        self._payment: dict = {}
        self.draft_id = _new_draft_id()

        self._lock = asyncio.Lock()
        self._in_progress = False
        self.operation_error: OperationResult | None = None
        self._listeners: list[Listener] = []

        self._version = 0
        self._total_cache: tuple[int, float] | None = None

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------
    @property
    def items(self) -> list[dict]:
        """Cart items with their configuration merged in."""
        return [item.as_dict() for item in self.cart.items]

    @property
    def configurations(self) -> dict:
        return self.cart.configurations()

    @property
    def customer(self) -> dict:
        return deepcopy(self._customer)

    @property
    def billing_info(self) -> dict:
        return deepcopy(self._billing)

    @property
    def payment_info(self) -> dict:
        return deepcopy(self._payment)

    @property
    def item_count(self) -> int:
        return len(self.cart.items)

    @property
    def is_empty(self) -> bool:
        return not self.cart.items

    @property
    def operation_in_progress(self) -> bool:
        return self._in_progress

    @property
    def total_amount(self) -> float:
        """Sum of price times quantity, in major units.

        Cached until the items change.
        """
        if self._total_cache is None or self._total_cache[0] != self._version:
            total = self.cart.subtotal().quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            self._total_cache = (self._version, float(total))
        return self._total_cache[1]

    def get_item(self, item_id) -> dict | None:
        item = self.cart.find_item(item_id)
        return item.as_dict() if item is not None else None

    def are_all_items_configured(self) -> bool:
        return all(is_configured(item) for item in self.items)

    def snapshot(self) -> dict:
        return {
            "items": self.items,
            "configurations": self.configurations,
            "customer": self.customer,
            "billing_info": self.billing_info,
            "payment_info": self.payment_info,
            "total_amount": self.total_amount,
            "item_count": self.item_count,
            "draft_id": self.draft_id,
        }

    # -------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Cart listener failed", listener=getattr(listener, "__name__", repr(listener)))

    def reset_operation_error(self) -> None:
        self.operation_error = None

    # -------------------------------------------------------------------
    # Operation plumbing
    # -------------------------------------------------------------------
    def _capture(self) -> dict:
        return {
            "items": self.items,
            "customer": deepcopy(self._customer),
            "billing": deepcopy(self._billing),
            "payment": deepcopy(self._payment),
            "draft_id": self.draft_id,
        }

    def _restore(self, state: dict) -> None:
        self._rebuild(state["items"])
        self._customer = state["customer"]
        self._billing = state["billing"]
        self._payment = state["payment"]
        self.draft_id = state["draft_id"]

    def _rebuild(self, items: list[dict]) -> None:
        cart = ShoppingCart.create(customer_id=self.cart.customer_id)
        for raw in items:
            fields, configuration = split_item(raw)
            cart.add_item(
                item_id=fields["id"],
                title=fields["title"],
                service_type=fields["service_type"],
                price=fields["price"],
                quantity=fields["quantity"],
                configuration=configuration,
            )
        cart._events.clear()
        self.cart = cart
        self._touch()

    def _touch(self) -> None:
        self._version += 1

    async def _persist(self) -> None:
        await self.storage.save_items(self.items)

    async def _run(self, name: str, operation: Callable[[], Awaitable[dict]]) -> OperationResult:
        async with self._lock:
            self._in_progress = True
            before = self._capture()
            try:
                payload = await operation()
            except Exception as exc:
                self._restore(before)
                result = OperationResult.from_exception(exc)
                self.operation_error = result
                logger.warning(
                    "Cart operation failed",
                    operation=name,
                    error=result.error,
                    error_kind=result.error_kind.value,
                )
                return result
            finally:
                self._in_progress = False

        logger.debug("Cart operation completed", operation=name, draft_id=self.draft_id)
        self._notify()
        return OperationResult.ok(**payload)

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    async def load_cart_items(self) -> OperationResult:
        """Rebuild the cart from storage."""

        async def operation():
            saved = await self.storage.load_items()
            items = [_canonical_item(item) for item in saved if isinstance(item, Mapping)]
            self._rebuild([item for item in items if item.get("id")])
            return {"items": self.items}

        return await self._run("load_cart_items", operation)

    async def add_item(self, item: Mapping) -> OperationResult:
        async def operation():
            normalized = _canonical_item(item)
            if not normalized.get("id"):
                raise ValidationError({"item_id": ["Item id is required"]})
            fields, configuration = split_item(normalized)
            self.cart.add_item(
                item_id=fields["id"],
                title=fields["title"],
                service_type=fields["service_type"],
                price=fields["price"],
                quantity=fields["quantity"],
                configuration=configuration,
            )
            self._touch()
            await self._persist()
            logger.info("Item added to cart", cart_item_id=fields["id"], service_type=fields["service_type"])
            return {"items": self.items}

        return await self._run("add_item", operation)

    async def remove_item(self, item_id) -> OperationResult:
        async def operation():
            self.cart.remove_item(item_id)
            self._touch()
            await self._persist()
            logger.info("Item removed from cart", cart_item_id=str(item_id))
            return {"items": self.items}

        return await self._run("remove_item", operation)

    async def update_quantity(self, item_id, quantity) -> OperationResult:
        async def operation():
            self.cart.update_quantity(item_id, quantity)
            self._touch()
            await self._persist()
            return {"items": self.items}

        return await self._run("update_quantity", operation)

    async def clear_cart(self) -> OperationResult:
        """Empty the cart and reset customer, billing and payment state."""

        async def operation():
            await self._clear()
            logger.info("Cart cleared", draft_id=self.draft_id)
            return {"items": []}

        return await self._run("clear_cart", operation)

    async def _clear(self) -> None:
        self.cart.clear()
        self._customer = {}
        self._billing = {}
        self._payment = {}
        self.draft_id = _new_draft_id()
        self._touch()
        await self._persist()

    # -------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------
    async def merge_configurations(self, patch: Mapping) -> OperationResult:
        """Deep-merge partial configurations, keyed by item id.

        Entries for ids that are not in the cart are ignored.
        """

        async def operation():
            if not isinstance(patch, Mapping):
                raise ValidationError({"configuration": ["Configurations must be keyed by item id"]})
            for item_id, partial in patch.items():
                if self.cart.find_item(item_id) is None:
                    logger.warning("Ignoring configuration for unknown cart item", cart_item_id=str(item_id))
                    continue
                self.cart.configure_item(item_id, dict(partial or {}))
            self._touch()
            await self._persist()
            return {"configurations": self.configurations}

        return await self._run("merge_configurations", operation)

    # -------------------------------------------------------------------
    # Customer, billing and payment slices
    # -------------------------------------------------------------------
    async def update_customer_info(self, patch: Mapping) -> OperationResult:
        async def operation():
            merged = {key: value for key, value in self._customer.items() if key != "name"}
            merged.update(canonical_fields(patch))
            self._customer = normalize_customer(merged) or {}
            if self._customer.get("id"):
                self.cart.customer_id = self._customer["id"]
            return {"customer": self.customer}

        return await self._run("update_customer_info", operation)

    async def update_billing_info(self, patch: Mapping) -> OperationResult:
        async def operation():
            self._billing = {**self._billing, **dict(patch)}
            return {"billing_info": self.billing_info}

        return await self._run("update_billing_info", operation)

    async def update_payment_info(self, patch: Mapping) -> OperationResult:
        async def operation():
            self._payment = {**self._payment, **dict(patch)}
            return {"payment_info": self.payment_info}

        return await self._run("update_payment_info", operation)

    async def reset_checkout_data(self) -> OperationResult:
        """Forget configurations and customer, billing and payment data; keep the items."""

        async def operation():
            self.cart.reset_configurations()
            self._customer = {}
            self._billing = {}
            self._payment = {}
            self._touch()
            await self._persist()
            return {"items": self.items}

        return await self._run("reset_checkout_data", operation)

    def record_payment_state(self, **fields: Any) -> None:
        """Write payment lifecycle state back into the payment slice."""
        self._payment = {**self._payment, **fields}
        self._notify()

    async def save_customer_info(self, customer: Mapping | None = None) -> OperationResult:
        async def operation():
            record = normalize_customer(customer if customer is not None else self._customer) or {}
            await self.customer_storage.save_customer(record)
            logger.info("Customer details saved", email=record.get("email"))
            return {"customer": record}

        return await self._run("save_customer_info", operation)

    async def load_customer_info(self) -> OperationResult:
        async def operation():
            saved = await self.customer_storage.get_saved_customer()
            if saved:
                self._customer = normalize_customer(saved) or {}
            return {"customer": self.customer if saved else None}

        return await self._run("load_customer_info", operation)

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def build_order(self, overrides: Mapping | None = None) -> dict:
        """The order that ``create_order`` would submit for the current cart."""
        paid = self._payment.get("status") == "succeeded"
        raw = {
            "items": self.items,
            "customer": self._customer or None,
            "customer_id": self._customer.get("id"),
            "amount": self.total_amount,
            "status": "paid" if paid else "pending",
            "payment_status": (PaymentStatusCode.PAID if paid else PaymentStatusCode.PENDING).value,
            **dict(overrides or {}),
        }
        order = normalize_order(raw) or {}
        order["billing"] = deepcopy(self._billing)
        order["payment_reference"] = self._payment.get("intent_id")
        order["draft_id"] = self.draft_id
        return order

    async def create_order(self, overrides: Mapping | None = None) -> OperationResult:
        """Submit the cart as an order; the cart is cleared only when the order is accepted."""

        async def operation():
            if self.is_empty:
                raise ValidationError({"cart": ["Cannot create an order from an empty cart"]})

            order = self.build_order(overrides)
            submission = await self.order_service.create_order(order)
            if not submission.success:
                raise CollaboratorError(submission.error or "Order could not be created", kind=ErrorKind.PROCESSING)

            created = {**order, **(normalize_order(submission.order) or {})}
            logger.info("Order created", order_id=created.get("id"), amount=created.get("amount"))
            await self._clear()
            return {"order": created}

        return await self._run("create_order", operation)
