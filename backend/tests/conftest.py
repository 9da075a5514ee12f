import os
import sys
from dataclasses import dataclass
from typing import Dict

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from bestelsysteem.auth import AuthService
from bestelsysteem.config import Settings
from bestelsysteem.domain import BarDraft, ProductDraft
from bestelsysteem.main import create_app
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.services.catalog import CatalogStore
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.services.orders import OrderEngine
from bestelsysteem.services.statistics import StatisticsService
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.services.topology import TopologyStore
from bestelsysteem.storage import InMemoryStorage, SQLAlchemyStorage

TEST_SECRET = "test-secret-key"


@dataclass
class Services:
    """All services wired on one storage, as create_app() does."""
    storage: object
    bus: NotificationBus
    product_cache: KeyedCache
    systems: SystemSettingsService
    catalog: CatalogStore
    topology: TopologyStore
    orders: OrderEngine
    statistics: StatisticsService


def build_services(storage, bus=None, max_quantity=None) -> Services:
    bus = bus or NotificationBus(order_changed_window=0, data_changed_window=0)
    product_cache = KeyedCache("products")
    systems = SystemSettingsService(
        storage,
        AuthService(TEST_SECRET),
        KeyedCache("system-settings"),
        product_cache=product_cache,
    )
    return Services(
        storage=storage,
        bus=bus,
        product_cache=product_cache,
        systems=systems,
        catalog=CatalogStore(storage, product_cache),
        topology=TopologyStore(storage, bus),
        orders=OrderEngine(storage, product_cache, bus, systems, max_quantity=max_quantity),
        statistics=StatisticsService(storage, systems),
    )


def seed_event(services: Services, total_tables: int = 4, live: bool = True) -> Dict:
    """
    Create a system with three products, two bars, a kitchen and tables
    split evenly over the bars (tables 1-2 -> bar 1, 3-4 -> bar 2).
    """
    system = services.systems.save_system(name="Zomerfeest", live=live)
    products = services.catalog.save_products(
        system.id,
        drinks=[
            ProductDraft("bier", "Bier", 2.5, 0),
            ProductDraft("cola", "Cola", 2.0, 1),
        ],
        foods=[ProductDraft("bitterballen", "Bitterballen", 5.5, 0)],
    )
    bars = [BarDraft(None, 1, "Bar 1"), BarDraft(None, 2, "Bar 2")]
    half = total_tables // 2
    assignments = [_Entry(bar_number=1) for _ in range(half)]
    assignments += [_Entry(bar_number=2) for _ in range(total_tables - half)]
    topology = services.topology.save_topology(
        system.id,
        total_tables=total_tables,
        bars=bars,
        kitchens=[BarDraft(None, 1, "Keuken")],
        assignments=assignments,
    )
    return {
        "system": system,
        "products": products,
        "topology": topology,
        "bars": {b.bar_number: b for b in topology.bars},
    }


class _Entry:
    """Bare assignment entry with only the attributes the store reads."""

    def __init__(self, table_id=None, bar_id=None, bar_number=None):
        self.table_id = table_id
        self.bar_id = bar_id
        self.bar_number = bar_number


@pytest.fixture(params=["inmemory", "sqlalchemy"])
def storage(request, tmp_path):
    """Fresh storage of each backend."""
    if request.param == "inmemory":
        yield InMemoryStorage()
        return
    storage = SQLAlchemyStorage(f"sqlite:///{tmp_path / 'bestelsysteem_test.db'}")
    yield storage
    storage.close()


@pytest.fixture
def services(storage) -> Services:
    return build_services(storage)


@pytest.fixture
def event(services) -> Dict:
    return seed_event(services)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for API tests: no throttling, fixed secret."""
    return Settings(
        jwt_secret_key=TEST_SECRET,
        order_changed_throttle_seconds=0,
        data_changed_throttle_seconds=0,
        log_level="WARNING",
    )


@pytest.fixture
def api_app(test_settings):
    """FastAPI app on fresh in-memory storage."""
    return create_app(test_settings, storage=InMemoryStorage())


@pytest_asyncio.fixture
async def async_client(api_app):
    """Create async HTTP client for testing."""
    async with httpx.AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as client:
        yield client
