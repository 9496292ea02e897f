from typing import List
from .common import CamelModel


class AdminFamilySummary(CamelModel):
    id: str
    family_name: str
    city: str
    email: str
    family_code: str
    created_at: str | None = None
    children_count: int = 0
    subscription_status: str | None = None
    subscription_plan: str | None = None
    subscription_interval: str | None = None


class AdminStats(CamelModel):
    total_families: int = 0
    total_children: int = 0
    total_points_ever: int = 0
    total_donation_points: int = 0


class FinancialStats(CamelModel):
    total_revenue: float = 0.0
    active_subscriptions: int = 0
    monthly_growth: float = 0.0
    avg_subscription_value: float = 0.0


class SubscriptionEvent(CamelModel):
    id: str
    family_name: str
    email: str
    plan: str
    amount: float
    interval: str
    created_at: str
    status: str


class FinancialOverview(CamelModel):
    stats: FinancialStats
    recent_subscriptions: List[SubscriptionEvent] = []
