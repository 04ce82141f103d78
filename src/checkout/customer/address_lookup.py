"""Debounced postcode lookup for the customer details step.

The details form asks an address provider for suggestions as the customer
types a postcode. Lookups wait for a pause in typing, and a new keystroke
cancels whatever lookup is still pending.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from checkout.config import MIN_ADDRESS_DEBOUNCE_MS, get_settings
from checkout.customer.details import is_valid_uk_postcode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AddressSuggestion:
    full_address: str
    coordinates: tuple[float, float] | None = None
    context: dict = field(default_factory=dict)

    @property
    def city(self) -> str:
        return str(self.context.get("place") or self.context.get("city") or "")

    @property
    def postcode(self) -> str:
        return str(self.context.get("postcode") or "")


class AddressProvider(ABC):
    """Address suggestion service (geocoder) port."""

    @abstractmethod
    async def lookup(self, postcode: str) -> list[AddressSuggestion]:
        ...


ResultsListener = Callable[[str, list[AddressSuggestion]], Awaitable[None] | None]


class DebouncedAddressLookup:
    """Run at most one address lookup per pause in typing."""

    def __init__(
        self,
        provider: AddressProvider,
        on_results: ResultsListener | None = None,
        wait_seconds: float | None = None,
        min_length: int | None = None,
    ) -> None:
        settings = get_settings()
        self.provider = provider
        self.on_results = on_results
        floor = MIN_ADDRESS_DEBOUNCE_MS / 1000
        self.wait_seconds = max(wait_seconds if wait_seconds is not None else settings.address_debounce_seconds, floor)
        self.min_length = min_length if min_length is not None else settings.postcode_min_length
        self._pending: asyncio.Task | None = None
        self.last_results: list[AddressSuggestion] = []

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def should_lookup(self, postcode: str) -> bool:
        cleaned = (postcode or "").strip()
        return len(cleaned) >= self.min_length and is_valid_uk_postcode(cleaned)

    def schedule(self, postcode: str) -> bool:
        """Register a keystroke; returns True when a lookup was scheduled.

        Any lookup still waiting is cancelled, whether or not the new input
        qualifies for a lookup of its own.
        """
        self.cancel()
        if not self.should_lookup(postcode):
            return False

        self._pending = asyncio.get_running_loop().create_task(self._run(postcode.strip().upper()))
        return True

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> list[AddressSuggestion]:
        """Wait for the pending lookup, if any, and return its suggestions."""
        task = self._pending
        if task is None:
            return self.last_results
        try:
            await task
        except asyncio.CancelledError:
            return []
        return self.last_results

    async def _run(self, postcode: str) -> None:
        await asyncio.sleep(self.wait_seconds)
        try:
            suggestions = await self.provider.lookup(postcode)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Address lookup failed", postcode=postcode, error=str(exc))
            suggestions = []

        self.last_results = list(suggestions)
        logger.debug("Address lookup completed", postcode=postcode, suggestions=len(self.last_results))
        if self.on_results is not None:
            outcome = self.on_results(postcode, self.last_results)
            if asyncio.iscoroutine(outcome):
                await outcome
