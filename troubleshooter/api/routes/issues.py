"""
Issue (category) administration routes.

Endpoints for creating, renaming, toggling and deleting categories, and
for fetching the cached category graph used by the visual editor.
"""

from typing import List

from fastapi import APIRouter, Query, status
import structlog

from troubleshooter.api.dependencies import CategoryServiceDep, SnapshotServiceDep
from troubleshooter.api.schemas import (
    CreateIssueRequest,
    DeleteIssueResponse,
    UpdateIssueRequest,
)
from troubleshooter.domain.models.graph import CategoryGraph, CategorySummary

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/issues", tags=["issues"])


@router.get("", response_model=List[CategorySummary])
async def list_issues(service: CategoryServiceDep):
    return await service.list_categories()


@router.post(
    "",
    response_model=CategorySummary,
    status_code=status.HTTP_201_CREATED,
)
async def create_issue(body: CreateIssueRequest, service: CategoryServiceDep):
    """Create an inactive issue with its root question.

    The issue appears in the menu once it is toggled on.
    """
    return await service.create_category(
        name=body.name,
        category=body.category,
        root_question_text=body.root_question_text,
        display_category=body.display_category,
    )


@router.put("/{category}", response_model=CategorySummary)
async def update_issue(
    category: str, body: UpdateIssueRequest, service: CategoryServiceDep
):
    return await service.update_category(
        category, name=body.name, display_category=body.display_category
    )


@router.delete("/{category}", response_model=DeleteIssueResponse)
async def delete_issue(
    category: str,
    service: CategoryServiceDep,
    delete_sessions: bool = Query(default=False),
):
    """Permanently delete an issue's nodes and connections."""
    result = await service.delete_category(category, delete_sessions=delete_sessions)
    return DeleteIssueResponse(category=category, **result)


@router.patch("/{category}/toggle", response_model=CategorySummary)
async def toggle_issue(
    category: str,
    service: CategoryServiceDep,
    force: bool = Query(default=False),
):
    """Switch an issue on or off.

    Switching on is refused with 422 while any question is a dead end,
    unless ``force=true``.
    """
    return await service.toggle_category(category, force=force)


@router.get("/{category}/graph", response_model=CategoryGraph)
async def get_issue_graph(category: str, snapshots: SnapshotServiceDep):
    return await snapshots.get_category_graph(category)
