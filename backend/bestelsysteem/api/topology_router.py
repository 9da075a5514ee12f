"""Bars, kitchens, tables and table-to-bar routing."""

from typing import List

from fastapi import APIRouter, Depends

from bestelsysteem.api.dependencies import get_topology, require_admin
from bestelsysteem.schemas import AssignmentModel, DistributeRequest, SaveTopologyRequest, TopologyResponse
from bestelsysteem.services.topology import DISTRIBUTIONS, TopologyStore

router = APIRouter(prefix="/api", tags=["topology"], dependencies=[Depends(require_admin)])


@router.get("/systems/{system_id}/topology", response_model=TopologyResponse, summary="Topology of a system")
async def get_topology_settings(system_id: int, topology: TopologyStore = Depends(get_topology)):
    return TopologyResponse.model_validate(topology.get_topology(system_id))


@router.put("/systems/{system_id}/topology", response_model=TopologyResponse, summary="Replace the topology")
async def save_topology(
    system_id: int,
    request: SaveTopologyRequest,
    topology: TopologyStore = Depends(get_topology),
):
    """
    Replace bars, kitchens, table count and routing in one transaction.

    Assignments name their table by table_id, else by table_number, else
    they apply to table number position + 1 in the list. Assignments
    without bar_id may name a bar by bar_number.
    """
    saved = topology.save_topology(
        system_id,
        total_tables=request.total_tables,
        bars=[b.to_draft() for b in request.bars],
        kitchens=[k.to_draft() for k in request.kitchens],
        assignments=request.assignments,
    )
    return TopologyResponse.model_validate(saved)


@router.post("/topology/distribute", response_model=List[AssignmentModel], summary="Propose a table split")
async def distribute_tables(request: DistributeRequest):
    """Even (contiguous blocks) or alternating (round-robin) split of tables over bars."""
    assignments = DISTRIBUTIONS[request.method](request.bars, request.total_tables)
    return [AssignmentModel.model_validate(a) for a in assignments]
