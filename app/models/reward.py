from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .child import Child


class RewardType(StrEnum):
    PRIVILEGE = "privilege"
    EXPERIENCE = "experience"
    DONATION = "donation"
    MONEY = "money"


class Reward(Base):
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    family_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("family.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    type: Mapped[RewardType] = mapped_column(default=RewardType.PRIVILEGE)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    family: Mapped["Family"] = relationship(back_populates="rewards")
    assignments: Mapped[list["RewardAssignment"]] = relationship(
        back_populates="reward",
        cascade="all,delete-orphan",
        order_by="RewardAssignment.assigned_at",
    )
    pending_rewards: Mapped[list["PendingReward"]] = relationship(
        back_populates="reward",
        cascade="all,delete-orphan",
        passive_deletes=True,
    )


class RewardAssignment(Base):
    reward_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reward.id", ondelete="CASCADE"),
        primary_key=True,
    )
    child_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("child.id", ondelete="CASCADE"),
        primary_key=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    reward: Mapped["Reward"] = relationship(back_populates="assignments")
    child: Mapped["Child"] = relationship(back_populates="reward_assignments")


class PendingReward(Base):
    """A redeemed reward the parents still have to hand out."""

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    family_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("family.id", ondelete="CASCADE"),
        index=True,
    )
    child_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("child.id", ondelete="CASCADE"),
        index=True,
    )
    reward_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reward.id", ondelete="CASCADE"),
        index=True,
    )

    # cost at redemption time, later price edits do not touch it
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    family: Mapped["Family"] = relationship(back_populates="pending_rewards")
    child: Mapped["Child"] = relationship(back_populates="pending_rewards")
    reward: Mapped["Reward"] = relationship(back_populates="pending_rewards")
