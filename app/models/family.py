from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .child import Child
    from .chore import Chore
    from .reward import Reward, PendingReward
    from .auth import FamilySession


class PlanTier(StrEnum):
    STARTER = "starter"
    PREMIUM = "premium"


class SubscriptionStatus(StrEnum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class BillingInterval(StrEnum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Family(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_code: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    recovery_email: Mapped[str | None] = mapped_column(String(255))

    subscription_plan: Mapped[PlanTier | None] = mapped_column()
    subscription_status: Mapped[SubscriptionStatus | None] = mapped_column(default=SubscriptionStatus.INACTIVE)
    subscription_interval: Mapped[BillingInterval | None] = mapped_column()
    subscription_renewal_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    subscription_last_payment_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    subscription_order_id: Mapped[str | None] = mapped_column(String(255))

    children: Mapped[list["Child"]] = relationship(
        back_populates="family", cascade="all,delete-orphan", order_by="Child.created_at"
    )
    chores: Mapped[list["Chore"]] = relationship(
        back_populates="family", cascade="all,delete-orphan", order_by="Chore.created_at"
    )
    rewards: Mapped[list["Reward"]] = relationship(
        back_populates="family", cascade="all,delete-orphan", order_by="Reward.created_at"
    )
    pending_rewards: Mapped[list["PendingReward"]] = relationship(
        back_populates="family", cascade="all,delete-orphan", order_by="PendingReward.redeemed_at"
    )
    sessions: Mapped[list["FamilySession"]] = relationship(back_populates="family", cascade="all,delete-orphan")
