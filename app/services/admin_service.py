import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.child import Child
from ..models.family import Family, BillingInterval, PlanTier, SubscriptionStatus
from ..models.reward import PendingReward, Reward, RewardType
from ..schemas.admin import AdminFamilySummary, AdminStats, FinancialOverview, FinancialStats, SubscriptionEvent
from ..utils.timestamps import as_utc, to_iso
from .errors import ConflictError, NotFoundError, EMAIL_IN_USE, FAMILY_CODE_IN_USE, FAMILY_NOT_FOUND
from .family_service import authenticate_family, create_family, get_family_by_email, normalize_email
from .security import hash_password

logger = logging.getLogger(__name__)


def _code_taken(db: Session, code: str, family_id: str | None = None) -> bool:
    q = select(Family.id).where(Family.family_code == code)
    if family_id:
        q = q.where(Family.id != family_id)
    return db.execute(q).first() is not None


def list_families_for_admin(db: Session) -> list[AdminFamilySummary]:
    children_count = func.count(Child.id)
    rows = db.execute(
        select(Family, children_count)
        .outerjoin(Child, Child.family_id == Family.id)
        .group_by(Family.id)
        .order_by(Family.created_at.desc())
    ).all()
    return [
        AdminFamilySummary(
            id=fam.id,
            family_name=fam.family_name,
            city=fam.city,
            email=fam.email,
            family_code=fam.family_code,
            created_at=to_iso(fam.created_at),
            children_count=count,
            subscription_status=fam.subscription_status.value if fam.subscription_status else None,
            subscription_plan=fam.subscription_plan.value if fam.subscription_plan else None,
            subscription_interval=fam.subscription_interval.value if fam.subscription_interval else None,
        )
        for fam, count in rows
    ]


def create_family_admin(
    db: Session, *,
    family_name: str,
    city: str,
    email: str,
    password: str,
    family_code: str | None = None,
) -> Family:
    code = family_code.strip().upper() if family_code else None
    if code and _code_taken(db, code):
        raise ConflictError(FAMILY_CODE_IN_USE, f"Family code {code} is already in use.")
    fam = create_family(db, family_name=family_name, city=city, email=email, password=password, family_code=code)
    logger.info(f"Admin created family {fam.id} ({fam.email})")
    return fam


def update_family_admin(
    db: Session,
    family_id: str, *,
    family_name: str | None = None,
    city: str | None = None,
    email: str | None = None,
    family_code: str | None = None,
) -> Family:
    fam = db.get(Family, family_id)
    if not fam:
        raise NotFoundError(FAMILY_NOT_FOUND, "Family not found.")

    changes = {}
    if family_name is not None:
        changes["family_name"] = family_name
    if city is not None:
        changes["city"] = city
    if email is not None:
        email = normalize_email(email)
        other = get_family_by_email(db, email)
        if other and other.id != family_id:
            raise ConflictError(EMAIL_IN_USE, "This email address is already registered.")
        changes["email"] = email
    if family_code is not None:
        code = family_code.strip().upper()
        if _code_taken(db, code, family_id):
            raise ConflictError(FAMILY_CODE_IN_USE, f"Family code {code} is already in use.")
        changes["family_code"] = code

    if not changes:
        return fam
    for field, value in changes.items():
        setattr(fam, field, value)
    db.commit()
    db.refresh(fam)
    logger.info(f"Admin updated family {family_id}: {sorted(changes)}")
    return fam


def set_family_password(db: Session, family_id: str, password: str) -> None:
    fam = db.get(Family, family_id)
    if not fam:
        raise NotFoundError(FAMILY_NOT_FOUND, "Family not found.")
    fam.password_hash = hash_password(password)
    db.commit()
    logger.info(f"Password reset for family {family_id}")


def delete_family_admin(db: Session, family_id: str) -> bool:
    fam = db.get(Family, family_id)
    if not fam:
        return False
    # children, chores, rewards, pending rewards and sessions go with it
    db.delete(fam)
    db.commit()
    logger.info(f"Admin deleted family {family_id}")
    return True


def get_admin_stats(db: Session) -> AdminStats:
    total_families = db.scalar(select(func.count(Family.id))) or 0
    total_children, total_points_ever = db.execute(
        select(func.count(Child.id), func.coalesce(func.sum(Child.total_points_ever), 0))
    ).one()
    total_donation_points = db.scalar(
        select(func.coalesce(func.sum(PendingReward.points), 0))
        .join(Reward, PendingReward.reward_id == Reward.id)
        .where(Reward.type == RewardType.DONATION)
    )
    return AdminStats(
        total_families=total_families,
        total_children=total_children or 0,
        total_points_ever=total_points_ever or 0,
        total_donation_points=total_donation_points or 0,
    )


def plan_price(interval: BillingInterval | None) -> float:
    cents = settings.PREMIUM_PRICE_YEARLY_CENTS if interval == BillingInterval.YEARLY else settings.PREMIUM_PRICE_MONTHLY_CENTS
    return cents / 100


def _month_key(value: datetime) -> tuple[int, int]:
    return value.year, value.month


def monthly_growth(families: list[Family], now: datetime | None = None) -> float:
    """Percent change in active payers between last calendar month and this one.

    A family counts for the month of its most recent payment. With no payers
    last month the growth is 0 unless someone paid this month, then 100.
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    this_month = _month_key(now)
    last_month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)

    paid = [_month_key(as_utc(f.subscription_last_payment_at)) for f in families if f.subscription_last_payment_at]
    current = paid.count(this_month)
    previous = paid.count(last_month)
    if previous == 0:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


def get_financial_overview(db: Session, now: datetime | None = None) -> FinancialOverview:
    active = db.execute(
        select(Family)
        .where(Family.subscription_status == SubscriptionStatus.ACTIVE)
        .order_by(func.coalesce(Family.subscription_last_payment_at, Family.created_at).desc())
    ).scalars().all()

    total_revenue = sum(plan_price(f.subscription_interval) for f in active)
    recent = [
        SubscriptionEvent(
            id=f.id,
            family_name=f.family_name,
            email=f.email,
            plan=(f.subscription_plan or PlanTier.PREMIUM).value,
            amount=plan_price(f.subscription_interval),
            interval=(f.subscription_interval or BillingInterval.MONTHLY).value,
            created_at=to_iso(f.subscription_last_payment_at or f.created_at),
            status=f.subscription_status.value,
        )
        for f in active[:10]
    ]
    return FinancialOverview(
        stats=FinancialStats(
            total_revenue=round(total_revenue, 2),
            active_subscriptions=len(active),
            monthly_growth=monthly_growth(active, now),
            avg_subscription_value=round(total_revenue / len(active), 2) if active else 0.0,
        ),
        recent_subscriptions=recent,
    )


def ensure_admin_family(db: Session) -> Family:
    """Return the admin family, creating it or resetting its password as needed."""
    fam = authenticate_family(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    if fam:
        return fam
    existing = get_family_by_email(db, settings.ADMIN_EMAIL)
    if existing:
        logger.warning("Admin family password did not match the configured one, resetting it")
        set_family_password(db, existing.id, settings.ADMIN_PASSWORD)
        return existing
    logger.info(f"Creating admin family for {settings.ADMIN_EMAIL}")
    return create_family_admin(
        db,
        family_name="Administrator",
        city="Online",
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
    )
