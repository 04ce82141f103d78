import pytest
from checkout.cart.storage import InMemoryCartStorage
from checkout.cart.store import CartStore
from checkout.config import CheckoutSettings
from checkout.customer.storage import InMemoryCustomerStorage
from checkout.order.port import InMemoryOrderService
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.lifecycle import PaymentLifecycleManager
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    return CheckoutSettings(gateway_timeout_seconds=0.2)


@pytest.fixture()
def cart_storage():
    return InMemoryCartStorage()


@pytest.fixture()
def order_service():
    return InMemoryOrderService()


@pytest.fixture()
def customer_storage():
    return InMemoryCustomerStorage()


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def store(cart_storage, order_service, customer_storage, settings):
    return CartStore(
        storage=cart_storage,
        order_service=order_service,
        customer_storage=customer_storage,
        settings=settings,
    )


@pytest.fixture()
def lifecycle(store, gateway, settings):
    return PaymentLifecycleManager(store, gateway=gateway, settings=settings)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------
@pytest.fixture()
def sample_test_item():
    return {"id": "svc-test-1", "title": "CSCS Health & Safety Test", "service_type": "test", "price": 36.0}


@pytest.fixture()
def sample_card_item():
    return {"id": "svc-card-1", "title": "CSCS Green Card", "service_type": "card", "price": 43.75, "quantity": 2}


@pytest.fixture()
def complete_test_configuration():
    return {
        "test_details": {
            "test_date": "2026-11-02",
            "test_time": "10:30",
            "test_centre": "London Holborn",
        }
    }


@pytest.fixture()
def customer_details():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone_number": "07700900123",
        "date_of_birth": "1990-12-10",
        "address": "10 Downing Street",
        "city": "London",
        "postcode": "SW1A 2AA",
    }
