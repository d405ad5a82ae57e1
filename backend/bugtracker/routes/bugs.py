"""
Bug Tracker Backend: Bug Route Handlers
=========================================

What:  The /api/bugs resource: list, stats, users, tags, detail, create,
       update, delete and tag regeneration.
How:   Thin handlers; each one extracts parameters and delegates to the
       query or mutation service. Every route requires a bearer token.
Who:   Called by the frontend dashboard, bug form and bug detail views.

Route order matters: the fixed paths (/stats, /users, /tags) are declared
before /{bug_id} so they are never captured as an id.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from bugtracker.dependencies import get_current_user, get_mutation_service, get_query_service
from bugtracker.models.user import User
from bugtracker.schemas.bug import (
    BugCreateRequest,
    BugListResponse,
    BugPatch,
    BugResponse,
    BugStatsResponse,
    BugUpdateRequest,
    ErrorResponse,
    MessageResponse,
    UserSummary,
)
from bugtracker.services.bug_mutation_service import BugMutationService
from bugtracker.services.bug_query_service import (
    DEFAULT_LIMIT,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    BugQueryService,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/bugs",
    tags=["Bugs"],
    dependencies=[Depends(get_current_user)],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)


# ══════════════════════════════════════════════════════════════════════════
# Collection routes
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=BugListResponse,
    responses={400: {"description": "Invalid filter or sort", "model": ErrorResponse}},
    summary="List bugs with filters, sorting and pagination",
)
async def list_bugs(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    severity: Optional[str] = Query(default=None),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    tags: Optional[str] = Query(
        default=None,
        description="Comma-separated; bugs carrying any of these tags match",
    ),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=100),
    sort_by: str = Query(default=DEFAULT_SORT_BY, alias="sortBy"),
    sort_order: str = Query(
        default=DEFAULT_SORT_ORDER,
        alias="sortOrder",
        description="'desc' for descending; any other value sorts ascending",
    ),
    service: BugQueryService = Depends(get_query_service),
) -> BugListResponse:
    return await service.list_bugs(
        status=status_filter,
        severity=severity,
        assigned_to=assigned_to,
        tags=tags,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/stats", response_model=BugStatsResponse, summary="Bug counts by status and severity")
async def bug_stats(service: BugQueryService = Depends(get_query_service)) -> BugStatsResponse:
    return await service.bug_stats()


@router.get("/users", response_model=List[UserSummary], summary="Users available for assignment")
async def list_users(service: BugQueryService = Depends(get_query_service)) -> List[UserSummary]:
    return await service.list_users()


@router.get("/tags", response_model=List[str], summary="Distinct tags across all bugs")
async def list_tags(service: BugQueryService = Depends(get_query_service)) -> List[str]:
    return await service.list_tags()


@router.post(
    "",
    response_model=BugResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Validation failed", "model": ErrorResponse}},
    summary="Report a new bug",
)
async def create_bug(
    body: BugCreateRequest,
    current_user: User = Depends(get_current_user),
    service: BugMutationService = Depends(get_mutation_service),
) -> BugResponse:
    """
    Create a bug reported by the caller.

    Tags are suggested by the tag model; when it is unavailable the bug is
    still created, with the default tags.
    """
    return await service.create_bug(
        reporter_id=current_user.id,
        title=body.title,
        description=body.description,
        severity=body.severity,
        assigned_to=body.assigned_to,
    )


# ══════════════════════════════════════════════════════════════════════════
# Item routes
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/{bug_id}",
    response_model=BugResponse,
    responses={404: {"description": "Bug not found", "model": ErrorResponse}},
    summary="Get a single bug",
)
async def get_bug(
    bug_id: UUID,
    service: BugQueryService = Depends(get_query_service),
) -> BugResponse:
    return await service.get_bug(bug_id)


@router.put(
    "/{bug_id}",
    response_model=BugResponse,
    responses={
        400: {"description": "Validation failed", "model": ErrorResponse},
        404: {"description": "Bug not found", "model": ErrorResponse},
    },
    summary="Partially update a bug",
)
async def update_bug(
    bug_id: UUID,
    body: BugUpdateRequest,
    service: BugMutationService = Depends(get_mutation_service),
) -> BugResponse:
    """
    Only the fields present in the body change. Sending title or description
    regenerates the tags; `assignedTo: ""` or `null` unassigns.
    """
    return await service.update_bug(bug_id, BugPatch.from_request(body))


@router.delete(
    "/{bug_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Caller is not the reporter", "model": ErrorResponse},
        404: {"description": "Bug not found", "model": ErrorResponse},
    },
    summary="Delete a bug (reporter only)",
)
async def delete_bug(
    bug_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BugMutationService = Depends(get_mutation_service),
) -> MessageResponse:
    return await service.delete_bug(bug_id, caller_id=current_user.id)


@router.post(
    "/{bug_id}/regenerate-tags",
    response_model=BugResponse,
    responses={404: {"description": "Bug not found", "model": ErrorResponse}},
    summary="Recompute the tags of a bug",
)
async def regenerate_tags(
    bug_id: UUID,
    service: BugMutationService = Depends(get_mutation_service),
) -> BugResponse:
    return await service.regenerate_tags(bug_id)
