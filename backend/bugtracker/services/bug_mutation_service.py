"""
Bug Tracker Backend: Bug Mutation Service
===========================================

What:  Write side of the bug tracker: create, partial update, delete and tag
       regeneration.
How:   Validates input (collecting every violation), calls the TagGenerator
       where tags must be (re)computed, applies the change to the ORM objects
       and flushes. The request-scoped session commits after the handler.
Who:   Constructed per request by the bug routes.

Create Flow:
    1. Trim title/description; check required, length, enums, assignee
    2. Ask the TagGenerator for tags (falls back to ["bug", "issue"])
    3. priority ← SEVERITY_PRIORITY[severity], status ← Open,
       reported_by ← caller
    4. INSERT bug + bug_tags, flush, re-read with identities resolved

Update Rules:
    - Only fields present in the patch change
    - assignedTo null or "" clears the assignment
    - title or description present → tags regenerated and replaced
    - severity edits leave priority as it was at creation
    - no ownership check (delete is the only owner-only action)
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from bugtracker.models.bug import (
    DESCRIPTION_MAX_LENGTH,
    SEVERITY_PRIORITY,
    SEVERITY_VALUES,
    STATUS_VALUES,
    TITLE_MAX_LENGTH,
    Bug,
    Status,
    utcnow,
)
from bugtracker.models.user import User
from bugtracker.schemas.bug import BugPatch, BugResponse, MessageResponse
from bugtracker.services.bug_query_service import load_bug
from bugtracker.services.tag_generator import TagGenerator

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "Severity must be Low, Medium, High, or Critical"
STATUS_ERROR = "Status must be Open, In Progress, Resolved, or Closed"


class BugMutationService:
    """
    Create/update/delete operations on bugs.

    Error Handling Strategy:
        ValidationError, NotFoundError and ForbiddenError propagate unchanged.
        SQLAlchemyError → DatabaseError (logged with context). The
        TagGenerator never raises, so the upstream model cannot fail a
        mutation.
    """

    def __init__(self, session: AsyncSession, tag_generator: TagGenerator):
        self.session = session
        self.tag_generator = tag_generator

    # ══════════════════════════════════════════════════════════════════════
    # Validation
    # ══════════════════════════════════════════════════════════════════════

    async def _user_exists(self, user_id: uuid.UUID) -> bool:
        try:
            return await self.session.get(User, user_id) is not None
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", user_id, str(e))
            raise DatabaseError(context={"user_id": str(user_id)})

    async def _validate(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check the given fields and return their cleaned values.

        Only keys present in `values` are checked. Violations are collected in
        field order (title, description, severity, status, assignedTo) and
        raised together.
        """
        errors: List[str] = []
        cleaned: Dict[str, Any] = {}

        if "title" in values:
            title = (values["title"] or "").strip()
            if not title:
                errors.append("Title is required")
            elif len(title) > TITLE_MAX_LENGTH:
                errors.append(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")
            cleaned["title"] = title

        if "description" in values:
            description = (values["description"] or "").strip()
            if not description:
                errors.append("Description is required")
            elif len(description) > DESCRIPTION_MAX_LENGTH:
                errors.append(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
            cleaned["description"] = description

        if "severity" in values:
            severity = values["severity"]
            if not severity:
                errors.append("Severity is required")
            elif severity not in SEVERITY_VALUES:
                errors.append(SEVERITY_ERROR)
            cleaned["severity"] = severity

        if "status" in values:
            status = values["status"]
            if status not in STATUS_VALUES:
                errors.append(STATUS_ERROR)
            cleaned["status"] = status

        if "assigned_to" in values:
            raw = values["assigned_to"]
            if raw is None or not str(raw).strip():
                cleaned["assigned_to"] = None
            else:
                try:
                    assignee_id = uuid.UUID(str(raw).strip())
                except ValueError:
                    errors.append("Assigned user must be a valid user id")
                else:
                    if not await self._user_exists(assignee_id):
                        errors.append("Assigned user not found")
                    cleaned["assigned_to"] = assignee_id

        if errors:
            raise ValidationError(errors)
        return cleaned

    # ══════════════════════════════════════════════════════════════════════
    # Persistence helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _get_or_404(self, bug_id: uuid.UUID) -> Bug:
        try:
            bug = await load_bug(self.session, bug_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching bug %s: %s", bug_id, str(e))
            raise DatabaseError(context={"bug_id": str(bug_id)})
        if bug is None:
            raise NotFoundError(resource="bug")
        return bug

    async def _flush_and_reload(self, bug: Bug, operation: str) -> BugResponse:
        try:
            await self.session.flush()
            reloaded = await load_bug(self.session, bug.id)
        except SQLAlchemyError as e:
            logger.error(
                "Database error during %s of bug %s: %s",
                operation,
                bug.id,
                str(e),
                exc_info=True,
            )
            raise DatabaseError(context={"operation": operation, "error_type": type(e).__name__})
        return BugResponse.from_bug(reloaded)

    # ══════════════════════════════════════════════════════════════════════
    # Operations
    # ══════════════════════════════════════════════════════════════════════

    async def create_bug(
        self,
        reporter_id: uuid.UUID,
        title: Optional[str],
        description: Optional[str],
        severity: Optional[str],
        assigned_to: Optional[str] = None,
    ) -> BugResponse:
        """
        Create a bug reported by `reporter_id`.

        Raises:
            ValidationError: one or more fields invalid (all listed)
            DatabaseError: insert failed
        """
        cleaned = await self._validate(
            {
                "title": title,
                "description": description,
                "severity": severity,
                "assigned_to": assigned_to,
            }
        )

        tags = await self.tag_generator.generate_tags(cleaned["title"], cleaned["description"])

        bug = Bug(
            title=cleaned["title"],
            description=cleaned["description"],
            severity=cleaned["severity"],
            status=Status.OPEN.value,
            priority=SEVERITY_PRIORITY[cleaned["severity"]],
            reported_by=reporter_id,
            assigned_to=cleaned["assigned_to"],
        )
        bug.tags = tags
        self.session.add(bug)

        response = await self._flush_and_reload(bug, "create")
        logger.info(
            "Bug created: id=%s, severity=%s, tags=%s",
            response.id,
            response.severity,
            response.tags,
        )
        return response

    async def update_bug(self, bug_id: uuid.UUID, patch: BugPatch) -> BugResponse:
        """
        Apply a partial update.

        Raises:
            NotFoundError: no bug with this id
            ValidationError: a present field is invalid
            DatabaseError: update failed
        """
        bug = await self._get_or_404(bug_id)
        present = patch.present_fields()
        cleaned = await self._validate({name: getattr(patch, name) for name in present})

        for name, value in cleaned.items():
            setattr(bug, name, value)

        if patch.touches_content:
            bug.tags = await self.tag_generator.generate_tags(bug.title, bug.description)
        bug.updated_at = utcnow()

        response = await self._flush_and_reload(bug, "update")
        logger.info("Bug updated: id=%s, fields=%s", bug_id, present)
        return response

    async def delete_bug(self, bug_id: uuid.UUID, caller_id: uuid.UUID) -> MessageResponse:
        """
        Delete a bug; only its reporter may do so.

        Raises:
            NotFoundError: no bug with this id
            ForbiddenError: caller is not the reporter
        """
        bug = await self._get_or_404(bug_id)
        if str(caller_id) != str(bug.reported_by):
            logger.warning("Delete of bug %s refused for user %s", bug_id, caller_id)
            raise ForbiddenError()

        try:
            await self.session.delete(bug)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting bug %s: %s", bug_id, str(e), exc_info=True)
            raise DatabaseError(context={"bug_id": str(bug_id)})

        logger.info("Bug deleted: id=%s", bug_id)
        return MessageResponse(message="Bug deleted successfully")

    async def regenerate_tags(self, bug_id: uuid.UUID) -> BugResponse:
        """Recompute tags from the current title/description and overwrite them."""
        bug = await self._get_or_404(bug_id)
        bug.tags = await self.tag_generator.generate_tags(bug.title, bug.description)
        bug.updated_at = utcnow()

        response = await self._flush_and_reload(bug, "regenerate_tags")
        logger.info("Tags regenerated: id=%s, tags=%s", bug_id, response.tags)
        return response
