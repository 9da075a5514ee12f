"""Admin management of systems (event configurations)."""

from typing import List

from fastapi import APIRouter, Depends

from bestelsysteem.api.dependencies import get_systems, require_admin
from bestelsysteem.schemas import SystemRequest, SystemResponse
from bestelsysteem.services.systems import SystemSettingsService

router = APIRouter(prefix="/api/systems", tags=["systems"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[SystemResponse], summary="List systems")
async def list_systems(systems: SystemSettingsService = Depends(get_systems)):
    return [SystemResponse.model_validate(s) for s in systems.list_systems()]


@router.post("", response_model=SystemResponse, summary="Create or update a system")
async def save_system(request: SystemRequest, systems: SystemSettingsService = Depends(get_systems)):
    """
    Upsert a system by id.

    Marking a system live takes the live flag away from every other system.
    """
    system = systems.save_system(
        system_id=request.id,
        name=request.name,
        user_password=request.user_password,
        admin_password=request.admin_password,
        live=request.live,
    )
    return SystemResponse.model_validate(system)


@router.delete("/{system_id}", summary="Delete a system and everything it owns")
async def delete_system(system_id: int, systems: SystemSettingsService = Depends(get_systems)):
    systems.delete_system(system_id)
    return {"status": "deleted", "id": system_id}
