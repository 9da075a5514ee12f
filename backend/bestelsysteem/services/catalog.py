"""
Catalog Store: per-system drinks and foods.

Products are identified by their stable product_id, which clients may mint
before the product is saved. The product list of a system is cached in a
KeyedCache and invalidated after every successful save.
"""

import logging
import uuid
from typing import List, Optional, Sequence

from bestelsysteem.domain import ProductDraft, ProductList, ProductRecord, ProductType
from bestelsysteem.exceptions import NotFoundError, ValidationError
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.storage import Storage

logger = logging.getLogger(__name__)


def load_products(storage: Storage, system_id: int) -> List[ProductRecord]:
    """Read the products of a system straight from storage."""
    with storage.transaction() as uow:
        return uow.list_products(system_id)


def split_by_type(products: Sequence[ProductRecord]) -> ProductList:
    drinks = sorted((p for p in products if p.type == ProductType.DRINK), key=lambda p: p.position)
    foods = sorted((p for p in products if p.type == ProductType.FOOD), key=lambda p: p.position)
    return ProductList(drinks=drinks, foods=foods)


class CatalogStore:
    """Reads and replaces the product set of a system."""

    def __init__(self, storage: Storage, product_cache: KeyedCache):
        self.storage = storage
        self.product_cache = product_cache

    def catalog(self, system_id: int) -> List[ProductRecord]:
        """Cached flat product list of a system."""
        return list(self.product_cache.get_or_load(system_id, lambda: load_products(self.storage, system_id)))

    def get_products(self, system_id: Optional[int]) -> ProductList:
        """
        Products of a system partitioned into drinks and foods.

        A system id of 0 or None means no system is selected and yields
        empty lists.
        """
        if not system_id:
            return ProductList()
        return split_by_type(self.catalog(system_id))

    @staticmethod
    def new_product_id() -> str:
        """Mint a fresh stable product identifier."""
        return str(uuid.uuid4())

    def save_products(
        self,
        system_id: int,
        drinks: Sequence[ProductDraft],
        foods: Sequence[ProductDraft],
    ) -> ProductList:
        """
        Replace the full product set of a system in one transaction.

        Stored products whose product_id is not among the incoming ids are
        deleted, every incoming product is upserted by product_id. Products
        without a product_id get a new one. A blank product_id is skipped
        with a warning and does not fail the save.

        Raises:
            NotFoundError: system does not exist
            ValidationError: negative price, empty name, or a product_id
                that belongs to another system
        """
        incoming = [(d, ProductType.DRINK, i) for i, d in enumerate(drinks)]
        incoming += [(f, ProductType.FOOD, i) for i, f in enumerate(foods)]

        with self.storage.transaction() as uow:
            if uow.get_system(system_id) is None:
                raise NotFoundError("System", system_id)

            rows = []
            for draft, product_type, index in incoming:
                product_id = draft.product_id
                if product_id is not None and str(product_id).strip() == "":
                    logger.warning(
                        f"[CatalogStore] Skipping product '{draft.name}' in system {system_id}: empty product_id"
                    )
                    continue
                name = (draft.name or "").strip()
                if not name:
                    raise ValidationError("Product name must not be empty")
                price = float(draft.price)
                if price < 0:
                    raise ValidationError(f"Price of '{name}' must not be negative")
                position = draft.position if draft.position is not None else index
                rows.append(ProductRecord(
                    id=None,
                    system_id=system_id,
                    product_id=str(product_id) if product_id is not None else self.new_product_id(),
                    name=name,
                    price=price,
                    type=product_type,
                    position=position,
                ))

            keep = {row.product_id for row in rows}
            stored = uow.list_products(system_id)
            stale = [p.id for p in stored if p.product_id not in keep]
            uow.delete_products(stale)

            by_product_id = {p.product_id: p for p in stored}
            created = updated = 0
            for row in rows:
                existing = by_product_id.get(row.product_id)
                if existing is None:
                    other = uow.get_product(row.product_id)
                    if other is not None:
                        raise ValidationError(f"Product id {row.product_id} belongs to another system")
                    by_product_id[row.product_id] = uow.add_product(row)
                    created += 1
                else:
                    row.id = existing.id
                    uow.update_product(row)
                    updated += 1

            saved = uow.list_products(system_id)

        self.product_cache.invalidate(system_id)
        logger.info(
            f"[CatalogStore] Saved products for system {system_id}: "
            f"{created} created, {updated} updated, {len(stale)} deleted"
        )
        return split_by_type(saved)
