from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture

from order_management.broker import set_broker
from order_management.broker.fake_adapter import FakeBroker
from order_management.catalog import set_catalog
from order_management.catalog.fake_adapter import FakeCatalog
from order_management.inventory import set_inventory
from order_management.inventory.fake_adapter import FakeInventory
from order_management.outbox.delivery import DeadlineDelivery
from order_management.outbox.relay import RelayEngine


@pytest.fixture(scope="session")
def order_management_bed():
    from order_management.domain import order_management

    bed = DomainFixture(order_management)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(order_management_bed):
    with order_management_bed.domain_context():
        yield


@pytest.fixture()
def inventory():
    fake = FakeInventory()
    set_inventory(fake)
    return fake


@pytest.fixture()
def catalog():
    fake = FakeCatalog()
    set_catalog(fake)
    return fake


@pytest.fixture()
def broker():
    fake = FakeBroker()
    set_broker(fake)
    yield fake
    fake.release()


class SteppingClock:
    """Wall-clock time, shifted forward by ``advance``."""

    def __init__(self):
        self.offset = timedelta()

    def now(self) -> datetime:
        return datetime.now(UTC) + self.offset

    def advance(self, seconds: float) -> None:
        self.offset += timedelta(seconds=seconds)


@pytest.fixture()
def clock(order_management_bed):
    domain = order_management_bed.domain
    original = domain.clock
    domain.clock = SteppingClock()
    yield domain.clock
    domain.clock = original


@pytest.fixture()
def engine(order_management_bed):
    engine = RelayEngine(order_management_bed.domain, test_mode=True)
    yield engine
    engine.loop.close()


@pytest.fixture()
def relay(engine, broker):
    relay = engine.relays[0]
    relay.delivery = DeadlineDelivery(broker, timeout=0.1)
    return relay
