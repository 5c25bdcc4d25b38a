"""
Connection editing routes for the visual graph editor.
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from troubleshooter.api.dependencies import GraphEditServiceDep
from troubleshooter.api.schemas import CreateConnectionRequest, UpdateConnectionRequest
from troubleshooter.domain.models.graph import Connection

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("", response_model=List[Connection])
async def list_connections(
    service: GraphEditServiceDep,
    from_node_id: Optional[str] = Query(default=None),
    to_node_id: Optional[str] = Query(default=None),
):
    return await service.list_connections(
        from_node_id=from_node_id, to_node_id=to_node_id
    )


@router.post("", response_model=Connection, status_code=status.HTTP_201_CREATED)
async def create_connection(
    body: CreateConnectionRequest, service: GraphEditServiceDep
):
    return await service.create_connection(**body.model_dump())


@router.put("/{connection_id}", response_model=Connection)
async def update_connection(
    connection_id: str,
    body: UpdateConnectionRequest,
    service: GraphEditServiceDep,
):
    return await service.update_connection(
        connection_id, **body.model_dump(exclude_unset=True)
    )


@router.delete("/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(connection_id: str, service: GraphEditServiceDep):
    """Soft-delete a connection."""
    await service.delete_connection(connection_id)
