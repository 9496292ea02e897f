from typing import List
from .common import CamelModel


class SerializableChild(CamelModel):
    id: str
    name: str
    pin: str
    points: int
    total_points_ever: int
    avatar: str
    created_at: str | None = None


class SerializableChore(CamelModel):
    id: str
    name: str
    points: int
    assigned_to: List[str] = []
    status: str
    submitted_by: str | None = None
    submitted_at: str | None = None
    emotion: str | None = None
    photo_url: str | None = None
    created_at: str | None = None


class SerializableReward(CamelModel):
    id: str
    name: str
    points: int
    type: str
    assigned_to: List[str] = []
    created_at: str | None = None


class SerializablePendingReward(CamelModel):
    id: str
    child_id: str
    child_name: str = ""
    reward_id: str
    reward_name: str = ""
    points: int
    redeemed_at: str | None = None


class SerializableSubscription(CamelModel):
    plan: str | None = None
    status: str | None = None
    interval: str | None = None
    renewal_date: str | None = None
    last_payment_at: str | None = None
    order_id: str | None = None


class SerializableFamily(CamelModel):
    id: str
    family_code: str
    family_name: str
    city: str
    email: str
    created_at: str | None = None
    recovery_email: str | None = None
    subscription: SerializableSubscription
    children: List[SerializableChild] = []
    chores: List[SerializableChore] = []
    rewards: List[SerializableReward] = []
    pending_rewards: List[SerializablePendingReward] = []

