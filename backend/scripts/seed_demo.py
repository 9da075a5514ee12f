"""
Seed a live demo system: drinks, foods, two bars, a kitchen and an even
table split. Optionally places a few sample orders.

All writes go through the same services as the API, so the seeded data
obeys the same rules.

Usage:
    python -m scripts.seed_demo [--name "Zomerfeest"] [--tables 12] [--with-orders]

Environment:
    APP_DATABASE_URL: Database connection (default: sqlite:///./bestelsysteem.db)
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional

# Allow running as a plain script from the backend directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bestelsysteem.auth import AuthService
from bestelsysteem.config import Settings
from bestelsysteem.domain import BarDraft, ProductDraft
from bestelsysteem.logging_config import configure_logging
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.services.catalog import CatalogStore
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.services.orders import OrderEngine, receipt_summary
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.services.topology import TopologyStore, even_distribution
from bestelsysteem.storage import SQLAlchemyStorage, Storage
from bestelsysteem.utils.time_utils import set_local_timezone

logger = logging.getLogger(__name__)

DEMO_DRINKS = [
    ("Bier", 2.5),
    ("Pitcher Bier", 11.0),
    ("Rosé Bier", 3.0),
    ("Cola", 2.0),
    ("Spa Rood", 2.0),
]

DEMO_FOODS = [
    ("Bitterballen", 5.5),
    ("Frikandel", 2.5),
    ("Portie Friet", 3.0),
]


def seed_demo(
    storage: Storage,
    name: str = "Demo",
    total_tables: int = 10,
    bar_count: int = 2,
    with_orders: bool = False,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Create a live demo system in the given storage.

    Returns:
        Dictionary with system_id, counts of seeded rows and order receipts
    """
    settings = settings or Settings()
    auth = AuthService(settings.jwt_secret_key, settings.jwt_algorithm, settings.access_token_expire_minutes)
    product_cache = KeyedCache("products")
    systems = SystemSettingsService(
        storage,
        auth,
        KeyedCache("system-settings"),
        default_user_password=settings.default_user_password,
        default_admin_password=settings.default_admin_password,
        product_cache=product_cache,
    )
    catalog = CatalogStore(storage, product_cache)
    topology_store = TopologyStore(storage)

    system = systems.save_system(name=name, live=True)
    logger.info(f"Created live system {system.id} '{system.name}'")

    products = catalog.save_products(
        system.id,
        drinks=[ProductDraft(None, n, p, i) for i, (n, p) in enumerate(DEMO_DRINKS)],
        foods=[ProductDraft(None, n, p, i) for i, (n, p) in enumerate(DEMO_FOODS)],
    )

    bars = [BarDraft(id=None, bar_number=n, name=f"Bar {n}") for n in range(1, bar_count + 1)]
    # Bars have no id before the first save, so the split refers to them by bar_number
    topology = topology_store.save_topology(
        system.id,
        total_tables=total_tables,
        bars=bars,
        kitchens=[BarDraft(id=None, bar_number=1, name="Keuken")],
        assignments=even_distribution(bars, total_tables),
    )

    receipts: List[Dict[str, Any]] = []
    if with_orders and topology.total_tables:
        bus = NotificationBus(order_changed_window=0, data_changed_window=0)
        engine = OrderEngine(storage, product_cache, bus, systems, max_quantity=settings.max_item_quantity)
        ids = {p.name: p.product_id for p in products.drinks + products.foods}
        baskets = [
            (1, {ids["Bier"]: "2", ids["Bitterballen"]: "1"}),
            (2, {ids["Pitcher Bier"]: "1"}),
            (3, {ids["Rosé Bier"]: "3", ids["Portie Friet"]: "2"}),
        ]
        for table_number, basket in baskets:
            # Small venues get all sample orders on their last table
            table_number = min(table_number, topology.total_tables)
            receipts.append(receipt_summary(engine.place_order(system.id, table_number, basket)))

    return {
        "system_id": system.id,
        "drinks": len(products.drinks),
        "foods": len(products.foods),
        "bars": len(topology.bars),
        "kitchens": len(topology.kitchens),
        "tables": topology.total_tables,
        "assignments": len(topology.assignments),
        "receipts": receipts,
    }


def main():
    """Main entry point for the seeding script."""
    parser = argparse.ArgumentParser(description="Seed a live demo system")
    parser.add_argument('--name', default="Demo", help='Name of the demo system')
    parser.add_argument('--tables', type=int, default=10, help='Number of tables')
    parser.add_argument('--bars', type=int, default=2, help='Number of bars')
    parser.add_argument('--with-orders', action='store_true', help='Also place a few sample orders')
    parser.add_argument(
        '--database-url',
        help='Database URL (default: env var APP_DATABASE_URL or sqlite:///./bestelsysteem.db)',
        default=None
    )

    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    set_local_timezone(settings.timezone)

    db_url = args.database_url or settings.database_url
    logger.info(f"Using database: {db_url}")

    storage = SQLAlchemyStorage(db_url, use_alembic=settings.use_alembic)
    try:
        stats = seed_demo(
            storage,
            name=args.name,
            total_tables=args.tables,
            bar_count=args.bars,
            with_orders=args.with_orders,
            settings=settings,
        )

        print("\n" + "=" * 60)
        print("SEED RESULTS")
        print("=" * 60)
        print(f"System ID:    {stats['system_id']}")
        print(f"Drinks:       {stats['drinks']}")
        print(f"Foods:        {stats['foods']}")
        print(f"Bars:         {stats['bars']} (+{stats['kitchens']} kitchen)")
        print(f"Tables:       {stats['tables']}")
        print(f"Orders:       {sum(len(r['orders']) for r in stats['receipts'])}")
        print("=" * 60 + "\n")
        return 0

    except Exception as e:
        logger.error(f"Seeding failed: {e}", exc_info=True)
        return 1
    finally:
        storage.close()


if __name__ == '__main__':
    sys.exit(main())
