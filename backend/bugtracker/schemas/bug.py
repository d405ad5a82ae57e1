"""
Bug Tracker Backend: Pydantic Request/Response Schemas
========================================================

What:  Pydantic models defining the API contract with the frontend.
How:   Python attributes are snake_case; JSON keys are camelCase through an
       alias generator (`reportedBy`, `totalPages`, `sortOrder`, ...).
       FastAPI serializes response models by alias.

Request bodies are deliberately loose (every field optional, plain strings):
business validation happens in the mutation service so that all violations
can be collected and reported together as one 400 response.
"""

import uuid
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bugtracker.models.bug import Bug
from bugtracker.models.user import User


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Partial Update: explicit "absent" versus "null"
# ══════════════════════════════════════════════════════════════════════════


class _Unset:
    """Marker for a field the client did not send."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class BugPatch:
    """
    Tri-state partial update of a bug.

    Each field is either UNSET (leave unchanged), None (explicit null) or a
    value. For `assigned_to`, both None and "" clear the assignment.
    """

    title: Any = UNSET
    description: Any = UNSET
    severity: Any = UNSET
    status: Any = UNSET
    assigned_to: Any = UNSET

    @classmethod
    def from_request(cls, body: "BugUpdateRequest") -> "BugPatch":
        # model_fields_set holds exactly the keys present in the JSON body
        return cls(**{name: getattr(body, name) for name in body.model_fields_set})

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def present_fields(self) -> List[str]:
        return [f.name for f in fields(self) if self.is_set(f.name)]

    @property
    def touches_content(self) -> bool:
        """True when title or description is part of the update."""
        return self.is_set("title") or self.is_set("description")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BugCreateRequest(CamelModel):
    """Body of POST /api/bugs."""

    title: Optional[str] = Field(default=None, description="1-100 characters")
    description: Optional[str] = Field(default=None, description="1-1000 characters")
    severity: Optional[str] = Field(default=None, description="Low, Medium, High or Critical")
    assigned_to: Optional[str] = Field(default=None, description="User id, empty for none")


class BugUpdateRequest(CamelModel):
    """
    Body of PUT /api/bugs/{id}. Any subset of the fields may be sent.

    Converted to a BugPatch so that omitted fields and explicit nulls stay
    distinguishable.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    assigned_to: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    """Public identity of a user: never includes credential fields."""

    id: uuid.UUID
    username: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, username=user.username, email=user.email)


class BugResponse(CamelModel):
    """A bug with reporter and assignee resolved to their identities."""

    id: uuid.UUID
    title: str
    description: str
    severity: str
    status: str
    priority: int
    tags: List[str]
    reported_by: UserSummary
    assigned_to: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_bug(cls, bug: Bug) -> "BugResponse":
        return cls(
            id=bug.id,
            title=bug.title,
            description=bug.description,
            severity=bug.severity,
            status=bug.status,
            priority=bug.priority,
            tags=bug.tags,
            reported_by=UserSummary.from_user(bug.reporter),
            assigned_to=UserSummary.from_user(bug.assignee) if bug.assignee else None,
            created_at=bug.created_at,
            updated_at=bug.updated_at,
        )


class BugListResponse(CamelModel):
    """
    Page of bugs plus pagination state.

    `total` counts every bug matching the filters, independent of the page;
    `total_pages` is ceil(total / limit).
    """

    bugs: List[BugResponse]
    total: int
    total_pages: int
    current_page: int


class StatBucket(CamelModel):
    value: str
    count: int


class BugStatsResponse(CamelModel):
    """Bug counts per status and per severity; only observed values appear."""

    status_stats: List[StatBucket]
    severity_stats: List[StatBucket]


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error body for every API error.

    Example:
        {
            "error": "validation_error",
            "message": "Title is required, Severity is required",
            "details": {"errors": ["Title is required", "Severity is required"]},
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    tag_model: str = Field(description="available, unavailable or circuit_open")
    uptime_seconds: float
