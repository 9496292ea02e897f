import logging
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, selectinload

from ..models.child import Child
from ..models.reward import Reward, RewardAssignment, RewardType, PendingReward
from .child_service import ensure_family_children, get_child
from .errors import NotFoundError, ServiceError, CHILD_NOT_FOUND, REWARD_NOT_FOUND, INSUFFICIENT_POINTS

logger = logging.getLogger(__name__)


def _replace_assignments(db: Session, reward: Reward, assigned_to: Iterable[str]) -> None:
    reward.assignments.clear()
    db.flush()
    reward.assignments.extend(RewardAssignment(child_id=child_id) for child_id in assigned_to)


def get_reward(db: Session, family_id: str, reward_id: str) -> Reward | None:
    return db.execute(
        select(Reward)
        .where(Reward.id == reward_id, Reward.family_id == family_id)
        .options(selectinload(Reward.assignments))
    ).scalar_one_or_none()


def save_reward(
    db: Session, *,
    family_id: str,
    name: str,
    points: int,
    type: RewardType | str,
    assigned_to: Iterable[str] = (),
    reward_id: str | None = None,
) -> str:
    reward = None
    if reward_id:
        reward = get_reward(db, family_id, reward_id)
        if not reward:
            raise NotFoundError(REWARD_NOT_FOUND, "Reward not found.")
    assigned_to = ensure_family_children(db, family_id, assigned_to)

    if reward is None:
        reward = Reward(family_id=family_id)
        db.add(reward)
    reward.name = name
    reward.points = points
    reward.type = RewardType(type)
    try:
        _replace_assignments(db, reward, assigned_to)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Saving reward in family {family_id} failed", exc_info=True)
        raise
    return reward.id


def update_reward(
    db: Session, *,
    family_id: str,
    reward_id: str,
    name: str | None = None,
    points: int | None = None,
    type: RewardType | str | None = None,
    assigned_to: Iterable[str] | None = None,
) -> str:
    existing = get_reward(db, family_id, reward_id)
    if not existing:
        raise NotFoundError(REWARD_NOT_FOUND, "Reward not found.")
    return save_reward(
        db,
        family_id=family_id,
        reward_id=reward_id,
        name=name if name is not None else existing.name,
        points=points if points is not None else existing.points,
        type=type or existing.type,
        assigned_to=assigned_to if assigned_to is not None else [a.child_id for a in existing.assignments],
    )


def remove_reward(db: Session, family_id: str, reward_id: str) -> None:
    owned = select(Reward.id).where(Reward.id == reward_id, Reward.family_id == family_id)
    try:
        db.execute(delete(RewardAssignment).where(RewardAssignment.reward_id.in_(owned)))
        db.execute(delete(PendingReward).where(PendingReward.reward_id.in_(owned)))
        db.execute(delete(Reward).where(Reward.id == reward_id, Reward.family_id == family_id))
        db.commit()
    except Exception:
        db.rollback()
        raise


def record_pending_reward(db: Session, *, family_id: str, child_id: str, reward_id: str, points: int) -> PendingReward:
    # the caller commits
    pending = PendingReward(family_id=family_id, child_id=child_id, reward_id=reward_id, points=points)
    db.add(pending)
    return pending


def redeem_reward(db: Session, *, family_id: str, child_id: str, reward_id: str) -> tuple[Reward, Child]:
    """Spend a child's points on a reward and queue it for the parents.

    The balance is debited by a single conditional UPDATE, so two redemptions
    racing for the same points cannot take the balance below zero. The
    pending reward keeps the cost paid, later price edits leave it alone.
    The lifetime total is not touched by spending.
    """
    reward = db.execute(
        select(Reward).where(Reward.id == reward_id, Reward.family_id == family_id)
    ).scalar_one_or_none()
    if not reward:
        raise NotFoundError(REWARD_NOT_FOUND, "Reward not found.")

    child = get_child(db, family_id, child_id)
    if not child:
        raise NotFoundError(CHILD_NOT_FOUND, "Child not found.")

    cost = reward.points
    if child.points < cost:
        raise ServiceError(INSUFFICIENT_POINTS, "Not enough points for this reward.")

    try:
        result = db.execute(
            update(Child)
            .where(Child.id == child.id, Child.family_id == family_id, Child.points >= cost)
            .values(points=Child.points - cost)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # someone spent the points between the check and the debit
            raise ServiceError(INSUFFICIENT_POINTS, "Not enough points for this reward.")
        record_pending_reward(db, family_id=family_id, child_id=child.id, reward_id=reward.id, points=cost)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(child)
    logger.info(f"Reward {reward.id} redeemed by child {child.id} for {cost} points")
    return reward, child


def clear_pending_reward(db: Session, family_id: str, pending_reward_id: str) -> bool:
    # points were debited at redemption, handing the reward out changes no balance
    result = db.execute(
        delete(PendingReward).where(PendingReward.id == pending_reward_id, PendingReward.family_id == family_id)
    )
    db.commit()
    return bool(result.rowcount)
