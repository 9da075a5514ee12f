"""Product catalog endpoints."""

from fastapi import APIRouter, Depends

from bestelsysteem.api.dependencies import get_catalog, get_systems, require_admin, require_user
from bestelsysteem.schemas import NewProductIdResponse, ProductListResponse, SaveProductsRequest
from bestelsysteem.services.catalog import CatalogStore
from bestelsysteem.services.systems import SystemSettingsService

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get(
    "/systems/{system_id}/products",
    response_model=ProductListResponse,
    dependencies=[Depends(require_admin)],
    summary="Products of a system",
)
async def get_products(system_id: int, catalog: CatalogStore = Depends(get_catalog)):
    """Drinks and foods sorted by position. System id 0 yields empty lists."""
    return ProductListResponse.model_validate(catalog.get_products(system_id))


@router.put(
    "/systems/{system_id}/products",
    response_model=ProductListResponse,
    dependencies=[Depends(require_admin)],
    summary="Replace the products of a system",
)
async def save_products(
    system_id: int,
    request: SaveProductsRequest,
    catalog: CatalogStore = Depends(get_catalog),
):
    """
    Replace the full product list.

    Products missing from the request are deleted. Products without
    product_id get a new one; a blank product_id is skipped.
    """
    saved = catalog.save_products(
        system_id,
        drinks=[p.to_draft() for p in request.drinks],
        foods=[p.to_draft() for p in request.foods],
    )
    return ProductListResponse.model_validate(saved)


@router.get(
    "/products/live",
    response_model=ProductListResponse,
    dependencies=[Depends(require_user)],
    summary="Products of the live system",
)
async def get_live_products(
    catalog: CatalogStore = Depends(get_catalog),
    systems: SystemSettingsService = Depends(get_systems),
):
    system = systems.require_live_system()
    return ProductListResponse.model_validate(catalog.get_products(system.id))


@router.post(
    "/products/new-id",
    response_model=NewProductIdResponse,
    dependencies=[Depends(require_admin)],
    summary="Mint a product id for a product that is not saved yet",
)
async def new_product_id(catalog: CatalogStore = Depends(get_catalog)):
    return NewProductIdResponse(product_id=catalog.new_product_id())
