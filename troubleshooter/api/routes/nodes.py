"""
Node editing routes for the visual graph editor.
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from troubleshooter.api.dependencies import GraphEditServiceDep
from troubleshooter.api.schemas import CreateNodeRequest, UpdateNodeRequest
from troubleshooter.domain.models.graph import Node, NodeType, NodeWithConnections

router = APIRouter(prefix="/nodes", tags=["nodes"])


@router.get("", response_model=List[Node])
async def list_nodes(
    service: GraphEditServiceDep,
    category: Optional[str] = Query(default=None),
    node_type: Optional[NodeType] = Query(default=None),
):
    return await service.list_nodes(category=category, node_type=node_type)


@router.post("", response_model=Node, status_code=status.HTTP_201_CREATED)
async def create_node(body: CreateNodeRequest, service: GraphEditServiceDep):
    return await service.create_node(**body.model_dump())


@router.get("/{node_id}", response_model=Node)
async def get_node(node_id: str, service: GraphEditServiceDep):
    return await service.get_node(node_id)


@router.get("/{node_id}/with-connections", response_model=NodeWithConnections)
async def get_node_with_connections(node_id: str, service: GraphEditServiceDep):
    """Node plus its active outgoing connections and their targets."""
    return await service.get_node_with_connections(node_id)


@router.put("/{node_id}", response_model=Node)
async def update_node(
    node_id: str, body: UpdateNodeRequest, service: GraphEditServiceDep
):
    return await service.update_node(node_id, **body.model_dump(exclude_unset=True))


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(node_id: str, service: GraphEditServiceDep):
    """Soft-delete a node."""
    await service.delete_node(node_id)
