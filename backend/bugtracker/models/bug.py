"""
Bug Tracker Backend: Bug SQLAlchemy Models
============================================

What:  ORM models for the `bugs` and `bug_tags` tables, plus the severity and
       status enumerations and the severity → priority mapping.
Who:   Used by the query and mutation services and by Alembic.

Table Design Rationale:
    - UUID primary key, like every other table.
    - severity / status: short strings checked against the enums in the
      service layer, so every violation can be reported at once.
    - priority: derived from severity when the bug is created and never
      recomputed afterwards (a later severity edit leaves it stale).
    - tags: a child table (`bug_tags`) with an explicit `position` column.
      Keeping tags in rows makes "any of these tags" filtering a plain
      IN-subquery and distinct-tag listing a plain SELECT DISTINCT, on
      PostgreSQL and SQLite alike.
    - reported_by: mandatory, immutable after creation.
    - assigned_to: optional; NULL means unassigned.

Indexes:
    (status, severity, assigned_to)  list filters
    reported_by                      ownership lookups
    bug_tags.tag                     tag filtering and distinct listing
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bugtracker.database import Base
from bugtracker.models.user import User


class Severity(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Status(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


SEVERITY_VALUES = [s.value for s in Severity]
STATUS_VALUES = [s.value for s in Status]

SEVERITY_PRIORITY = {
    Severity.LOW.value: 1,
    Severity.MEDIUM.value: 2,
    Severity.HIGH.value: 3,
    Severity.CRITICAL.value: 4,
}

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
MAX_TAGS = 5
MAX_TAG_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BugTag(Base):
    """One tag of one bug; `position` preserves the order the model returned."""

    __tablename__ = "bug_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bug_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bugs.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tag: Mapped[str] = mapped_column(String(MAX_TAG_LENGTH), nullable=False)

    __table_args__ = (
        Index("idx_bug_tags_tag", "tag"),
        Index("idx_bug_tags_bug_id", "bug_id"),
    )

    def __repr__(self) -> str:
        return f"<BugTag(bug_id={self.bug_id}, position={self.position}, tag='{self.tag}')>"


class Bug(Base):
    """
    A bug report.

    Lifecycle:
        1. Created by an authenticated user (reporter); tags come from the
           tag model, priority from severity, status starts as Open.
        2. Updated by any authenticated caller; title/description edits
           regenerate the tags.
        3. Deleted by its reporter only.

    Relationships load eagerly ("selectin") because they are always part of
    the API response and async sessions cannot lazy-load on attribute access.
    """

    __tablename__ = "bugs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Status.OPEN.value,
        server_default=text("'Open'"),
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    reported_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    reporter: Mapped[User] = relationship(foreign_keys=[reported_by], lazy="selectin")
    assignee: Mapped[Optional[User]] = relationship(foreign_keys=[assigned_to], lazy="selectin")
    tag_rows: Mapped[List[BugTag]] = relationship(
        order_by=BugTag.position,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_bugs_status_severity_assigned", "status", "severity", "assigned_to"),
        Index("idx_bugs_reported_by", "reported_by"),
        Index("idx_bugs_created_at", created_at.desc()),
    )

    @property
    def tags(self) -> List[str]:
        return [row.tag for row in self.tag_rows]

    @tags.setter
    def tags(self, values: List[str]) -> None:
        # Wholesale replacement; the old rows are deleted as orphans on flush.
        self.tag_rows = [BugTag(position=i, tag=value) for i, value in enumerate(values)]

    def __repr__(self) -> str:
        return f"<Bug(id={self.id}, title='{self.title}', status='{self.status}')>"
