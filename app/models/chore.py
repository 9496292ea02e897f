from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .child import Child


class ChoreStatus(StrEnum):
    AVAILABLE = "available"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class Chore(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ChoreStatus] = mapped_column(default=ChoreStatus.AVAILABLE, index=True)
    # submitter, time, emotion and photo are written and cleared together
    submitted_by_child_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("child.id", ondelete="SET NULL"), index=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    emotion: Mapped[str | None] = mapped_column(String(255))
    photo_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    family: Mapped["Family"] = relationship(back_populates="chores")
    submitted_by: Mapped["Child | None"] = relationship(foreign_keys=[submitted_by_child_id])
    assignments: Mapped[list["ChoreAssignment"]] = relationship(
        back_populates="chore", cascade="all,delete-orphan", order_by="ChoreAssignment.assigned_at"
    )


class ChoreAssignment(Base):
    chore_id: Mapped[str] = mapped_column(String(36), ForeignKey("chore.id", ondelete="CASCADE"), primary_key=True)
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("child.id", ondelete="CASCADE"), primary_key=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    chore: Mapped["Chore"] = relationship(back_populates="assignments")
    child: Mapped["Child"] = relationship(back_populates="chore_assignments")
