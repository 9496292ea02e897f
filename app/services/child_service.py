import logging
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..models.child import Child
from ..models.chore import Chore, ChoreAssignment, ChoreStatus
from ..models.reward import RewardAssignment, PendingReward
from .errors import NotFoundError, CHILD_NOT_FOUND

logger = logging.getLogger(__name__)


def get_child(db: Session, family_id: str, child_id: str) -> Child | None:
    return db.execute(
        select(Child).where(Child.id == child_id, Child.family_id == family_id)
    ).scalar_one_or_none()


def ensure_family_children(db: Session, family_id: str, child_ids: Iterable[str]) -> list[str]:
    """De-duplicate ``child_ids``, raising CHILD_NOT_FOUND unless all belong to ``family_id``."""
    ids = list(dict.fromkeys(child_ids))
    if not ids:
        return ids
    found = set(db.scalars(select(Child.id).where(Child.family_id == family_id, Child.id.in_(ids))))
    if len(found) != len(ids):
        raise NotFoundError(CHILD_NOT_FOUND, "Child not found.")
    return ids


def save_child(
    db: Session, *,
    family_id: str,
    name: str,
    pin: str,
    avatar: str,
    child_id: str | None = None,
) -> str:
    if child_id:
        db.execute(
            update(Child)
            .where(Child.id == child_id, Child.family_id == family_id)
            .values(name=name, pin=pin, avatar=avatar)
        )
        db.commit()
        return child_id

    c = Child(family_id=family_id, name=name, pin=pin, avatar=avatar)
    db.add(c)
    db.commit()
    db.refresh(c)
    logger.info(f"Child added: id={c.id}, family={family_id}")
    return c.id


def update_child(
    db: Session, *,
    family_id: str,
    child_id: str,
    name: str | None = None,
    pin: str | None = None,
    avatar: str | None = None,
) -> Child:
    child = get_child(db, family_id, child_id)
    if not child:
        raise NotFoundError(CHILD_NOT_FOUND, "Child not found.")
    if name is not None:
        child.name = name
    if pin is not None:
        child.pin = pin
    if avatar is not None:
        child.avatar = avatar
    db.commit()
    db.refresh(child)
    return child


def remove_child(db: Session, family_id: str, child_id: str) -> bool:
    """Delete a child and everything that points at it, in one transaction.

    Chores the child had submitted go back to ``available`` with their
    submission fields cleared, so no chore keeps a reference to the deleted
    child. Returns False when the child is not part of ``family_id``.
    """
    if not get_child(db, family_id, child_id):
        return False
    try:
        db.execute(delete(ChoreAssignment).where(ChoreAssignment.child_id == child_id))
        db.execute(delete(RewardAssignment).where(RewardAssignment.child_id == child_id))
        db.execute(delete(PendingReward).where(PendingReward.child_id == child_id))
        db.execute(
            update(Chore)
            .where(Chore.family_id == family_id, Chore.submitted_by_child_id == child_id)
            .values(
                status=ChoreStatus.AVAILABLE,
                submitted_by_child_id=None,
                submitted_at=None,
                emotion=None,
                photo_url=None,
            )
        )
        db.execute(delete(Child).where(Child.id == child_id, Child.family_id == family_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Removing child {child_id} from family {family_id} failed", exc_info=True)
        raise
    logger.info(f"Child removed: id={child_id}, family={family_id}")
    return True


def update_child_points(db: Session, family_id: str, child_id: str, delta: int) -> bool:
    # evaluated by the database so concurrent credits cannot overwrite each other;
    # the caller owns the transaction
    result = db.execute(
        update(Child)
        .where(Child.id == child_id, Child.family_id == family_id)
        .values(
            points=Child.points + delta,
            total_points_ever=Child.total_points_ever + max(delta, 0),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
