"""
Bug Tracker Backend: Bug Query Service
========================================

What:  Read side of the bug tracker: filtered/sorted/paginated listing,
       single-bug lookup, distinct tags, assignable users and statistics.
How:   Builds SQLAlchemy statements from request parameters and maps rows to
       response schemas with reporter/assignee identities resolved.
Who:   Constructed per request with that request's AsyncSession.

Listing pipeline (GET /api/bugs):
    ┌──────────────┐    ┌──────────────┐    ┌─────────────────────────┐
    │ filters      │───▶│ COUNT(*)     │───▶│ total, totalPages       │
    │ status,      │    └──────────────┘    └─────────────────────────┘
    │ severity,    │    ┌──────────────┐    ┌─────────────────────────┐
    │ assignedTo,  │───▶│ ORDER BY     │───▶│ OFFSET (page-1)*limit   │
    │ tags (ANY)   │    │ field, id    │    │ LIMIT limit             │
    └──────────────┘    └──────────────┘    └─────────────────────────┘

    The count and the page query share the same list of WHERE conditions, so
    total/totalPages always describe the filtered set regardless of page.
"""

import logging
import math
import uuid
from typing import Any, List, Optional

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.exceptions import DatabaseError, NotFoundError, ValidationError
from bugtracker.models.bug import Bug, BugTag
from bugtracker.models.user import User
from bugtracker.schemas.bug import (
    BugListResponse,
    BugResponse,
    BugStatsResponse,
    StatBucket,
    UserSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"

# API sort key → column
SORT_FIELDS = {
    "createdAt": Bug.created_at,
    "updatedAt": Bug.updated_at,
    "title": Bug.title,
    "severity": Bug.severity,
    "status": Bug.status,
    "priority": Bug.priority,
}


def parse_tag_filter(tags: Optional[str]) -> List[str]:
    """"ui, crash,," → ["ui", "crash"]. Empty tokens are ignored."""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def parse_user_id(value: Any, label: str) -> uuid.UUID:
    """Parse a user id from request input or raise a ValidationError."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError([f"{label} must be a valid user id"])


async def load_bug(session: AsyncSession, bug_id: uuid.UUID) -> Optional[Bug]:
    """
    Fetch one bug with reporter, assignee and tags loaded.

    populate_existing refreshes an instance already in the session, so a
    mutation can re-read the row it just flushed and get its identities
    resolved.
    """
    result = await session.execute(
        select(Bug)
        .where(Bug.id == bug_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


class BugQueryService:
    """
    Read-only bug operations.

    Error Handling Strategy:
        NotFoundError and ValidationError propagate unchanged; any
        SQLAlchemyError is logged and wrapped in DatabaseError so the client
        sees a generic 500.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _build_filters(
        self,
        status: Optional[str],
        severity: Optional[str],
        assigned_to: Optional[str],
        tags: Optional[str],
    ) -> list:
        conditions = []
        if status:
            conditions.append(Bug.status == status)
        if severity:
            conditions.append(Bug.severity == severity)
        if assigned_to:
            conditions.append(Bug.assigned_to == parse_user_id(assigned_to, "assignedTo"))
        tag_set = parse_tag_filter(tags)
        if tag_set:
            # OR semantics: any overlap between the bug's tags and the set
            tagged = select(BugTag.bug_id).where(BugTag.tag.in_(tag_set))
            conditions.append(Bug.id.in_(tagged))
        return conditions

    async def list_bugs(
        self,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        assigned_to: Optional[str] = None,
        tags: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort_by: str = DEFAULT_SORT_BY,
        sort_order: str = DEFAULT_SORT_ORDER,
    ) -> BugListResponse:
        """
        List bugs matching the filters, one page at a time.

        Args:
            status / severity: exact match when given
            assigned_to: user id, exact match when given
            tags: comma-separated; matches bugs carrying any of them
            page: 1-indexed page number
            limit: page size
            sort_by: one of SORT_FIELDS (default createdAt)
            sort_order: "desc" sorts descending; any other value ascending

        Returns:
            BugListResponse(bugs, total, total_pages, current_page)

        Raises:
            ValidationError: bad page/limit, unknown sort field, malformed
                assignedTo id
            DatabaseError: query execution failed
        """
        errors = []
        if page < 1:
            errors.append("Page must be at least 1")
        if limit < 1:
            errors.append("Limit must be at least 1")
        if sort_by not in SORT_FIELDS:
            errors.append(f"sortBy must be one of: {', '.join(SORT_FIELDS)}")
        if errors:
            raise ValidationError(errors)

        conditions = self._build_filters(status, severity, assigned_to, tags)
        direction = desc if sort_order == "desc" else asc

        try:
            count_query = select(func.count()).select_from(Bug).where(*conditions)
            total = (await self.session.execute(count_query)).scalar_one()

            query = (
                select(Bug)
                .where(*conditions)
                .order_by(direction(SORT_FIELDS[sort_by]), direction(Bug.id))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            bugs = list((await self.session.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing bugs: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        return BugListResponse(
            bugs=[BugResponse.from_bug(bug) for bug in bugs],
            total=total,
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def get_bug(self, bug_id: uuid.UUID) -> BugResponse:
        """
        Raises:
            NotFoundError: no bug with this id
        """
        try:
            bug = await load_bug(self.session, bug_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching bug %s: %s", bug_id, str(e))
            raise DatabaseError(context={"bug_id": str(bug_id)})
        if bug is None:
            raise NotFoundError(resource="bug")
        return BugResponse.from_bug(bug)

    async def list_tags(self) -> List[str]:
        """Distinct non-blank tags across all bugs (sorted, set semantics)."""
        try:
            result = await self.session.execute(select(BugTag.tag).distinct())
            values = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing tags: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return sorted({tag for tag in values if tag and tag.strip()})

    async def list_users(self) -> List[UserSummary]:
        try:
            result = await self.session.execute(select(User).order_by(User.username))
            users = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return [UserSummary.from_user(user) for user in users]

    async def bug_stats(self) -> BugStatsResponse:
        try:
            status_rows = await self.session.execute(
                select(Bug.status, func.count()).group_by(Bug.status).order_by(Bug.status)
            )
            severity_rows = await self.session.execute(
                select(Bug.severity, func.count()).group_by(Bug.severity).order_by(Bug.severity)
            )
        except SQLAlchemyError as e:
            logger.error("Database error computing bug stats: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})

        return BugStatsResponse(
            status_stats=[StatBucket(value=value, count=count) for value, count in status_rows.all()],
            severity_stats=[StatBucket(value=value, count=count) for value, count in severity_rows.all()],
        )
