import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..core.config import settings
from ..models.family import Family, PlanTier, SubscriptionStatus, BillingInterval
from ..models.chore import Chore
from ..models.reward import Reward
from ..schemas.family import (
    SerializableChild,
    SerializableChore,
    SerializableFamily,
    SerializablePendingReward,
    SerializableReward,
    SerializableSubscription,
)
from ..utils.timestamps import to_iso
from .errors import ServiceError, ConflictError, EMAIL_IN_USE, FAMILY_CODE_UNAVAILABLE
from .security import generate_family_code, hash_password, verify_password

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _value(e) -> str | None:
    return e.value if e is not None else None


def _unique_ids(ids) -> list[str]:
    return list(dict.fromkeys(ids))


def generate_unique_family_code(db: Session) -> str:
    for _ in range(settings.FAMILY_CODE_ATTEMPTS):
        code = generate_family_code()
        if not db.execute(select(Family.id).where(Family.family_code == code)).first():
            return code
    raise ServiceError(FAMILY_CODE_UNAVAILABLE, "Could not generate a unique family code, try again.")


def create_family(
    db: Session, *,
    family_name: str,
    city: str,
    email: str,
    password: str,
    family_code: str | None = None,
) -> Family:
    email = normalize_email(email)
    if get_family_by_email(db, email):
        logger.warning(f"Registration refused, email already in use: {email}")
        raise ConflictError(EMAIL_IN_USE, "This email address is already registered.")

    fam = Family(
        family_name=family_name,
        city=city,
        email=email,
        password_hash=hash_password(password),
        family_code=family_code or generate_unique_family_code(db),
    )
    try:
        db.add(fam)
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration
        db.rollback()
        logger.warning(f"Registration hit a unique constraint for {email}")
        raise ConflictError(EMAIL_IN_USE, "This email address is already registered.")
    db.refresh(fam)
    logger.info(f"Family created: id={fam.id}, code={fam.family_code}, email={fam.email}")
    return fam


def authenticate_family(db: Session, email: str, password: str) -> Family | None:
    fam = get_family_by_email(db, email)
    if not fam:
        return None
    if not verify_password(password, fam.password_hash):
        return None
    return fam


def get_family_by_email(db: Session, email: str) -> Family | None:
    return db.execute(select(Family).where(Family.email == normalize_email(email))).scalar_one_or_none()


def get_family_by_id(db: Session, family_id: str) -> Family | None:
    return db.get(Family, family_id)


def get_family_by_code(db: Session, code: str) -> Family | None:
    q = select(Family).where(Family.family_code == code.strip().upper()).options(selectinload(Family.children))
    return db.execute(q).scalar_one_or_none()


def load_family_with_relations(db: Session, family_id: str) -> Family | None:
    q = (
        select(Family)
        .where(Family.id == family_id)
        .options(
            selectinload(Family.children),
            selectinload(Family.chores).selectinload(Chore.assignments),
            selectinload(Family.rewards).selectinload(Reward.assignments),
            selectinload(Family.pending_rewards),
        )
        .execution_options(populate_existing=True)
    )
    return db.execute(q).scalar_one_or_none()


def serialize_family(family: Family) -> SerializableFamily:
    children = [
        SerializableChild(
            id=c.id,
            name=c.name,
            pin=c.pin,
            points=c.points,
            total_points_ever=c.total_points_ever,
            avatar=c.avatar,
            created_at=to_iso(c.created_at),
        )
        for c in family.children
    ]
    child_names = {c.id: c.name for c in children}

    rewards = [
        SerializableReward(
            id=r.id,
            name=r.name,
            points=r.points,
            type=_value(r.type),
            assigned_to=_unique_ids(a.child_id for a in r.assignments),
            created_at=to_iso(r.created_at),
        )
        for r in family.rewards
    ]
    reward_names = {r.id: r.name for r in rewards}

    chores = [
        SerializableChore(
            id=ch.id,
            name=ch.name,
            points=ch.points,
            assigned_to=_unique_ids(a.child_id for a in ch.assignments),
            status=_value(ch.status),
            submitted_by=ch.submitted_by_child_id,
            submitted_at=to_iso(ch.submitted_at),
            emotion=ch.emotion,
            photo_url=ch.photo_url,
            created_at=to_iso(ch.created_at),
        )
        for ch in family.chores
    ]

    # names come from the siblings loaded above; a deleted child or reward reads as ""
    pending = [
        SerializablePendingReward(
            id=p.id,
            child_id=p.child_id,
            child_name=child_names.get(p.child_id, ""),
            reward_id=p.reward_id,
            reward_name=reward_names.get(p.reward_id, ""),
            points=p.points,
            redeemed_at=to_iso(p.redeemed_at),
        )
        for p in family.pending_rewards
    ]

    return SerializableFamily(
        id=family.id,
        family_code=family.family_code,
        family_name=family.family_name,
        city=family.city,
        email=family.email,
        created_at=to_iso(family.created_at),
        recovery_email=family.recovery_email,
        subscription=SerializableSubscription(
            plan=_value(family.subscription_plan),
            status=_value(family.subscription_status),
            interval=_value(family.subscription_interval),
            renewal_date=to_iso(family.subscription_renewal_date),
            last_payment_at=to_iso(family.subscription_last_payment_at),
            order_id=family.subscription_order_id,
        ),
        children=children,
        chores=chores,
        rewards=rewards,
        pending_rewards=pending,
    )


def update_recovery_email(db: Session, family_id: str, recovery_email: str) -> Family | None:
    fam = db.get(Family, family_id)
    if not fam:
        return None
    fam.recovery_email = normalize_email(recovery_email)
    db.commit()
    db.refresh(fam)
    return fam


def update_family_subscription(
    db: Session,
    family_id: str, *,
    plan: PlanTier | str | None = None,
    status: SubscriptionStatus | str | None = None,
    interval: BillingInterval | str | None = None,
    renewal_date: datetime | None = None,
    last_payment_at: datetime | None = None,
    order_id: str | None = None,
) -> Family | None:
    # every field is overwritten, omitted ones become null
    fam = db.get(Family, family_id)
    if not fam:
        return None
    fam.subscription_plan = PlanTier(plan) if plan else None
    fam.subscription_status = SubscriptionStatus(status) if status else None
    fam.subscription_interval = BillingInterval(interval) if interval else None
    fam.subscription_renewal_date = renewal_date
    fam.subscription_last_payment_at = last_payment_at
    fam.subscription_order_id = order_id
    db.commit()
    db.refresh(fam)
    logger.info(f"Subscription updated for family {family_id}: plan={plan}, status={status}, interval={interval}")
    return fam
