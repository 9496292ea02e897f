from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .chore import ChoreAssignment
    from .reward import RewardAssignment, PendingReward


class Child(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    # kept readable, parents look it up from the dashboard
    pin: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_points_ever: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avatar: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    family: Mapped["Family"] = relationship(back_populates="children")
    chore_assignments: Mapped[list["ChoreAssignment"]] = relationship(
        back_populates="child", cascade="all,delete-orphan", passive_deletes=True
    )
    reward_assignments: Mapped[list["RewardAssignment"]] = relationship(
        back_populates="child", cascade="all,delete-orphan", passive_deletes=True
    )
    pending_rewards: Mapped[list["PendingReward"]] = relationship(
        back_populates="child", cascade="all,delete-orphan", passive_deletes=True
    )
