import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from ..models.chore import Chore, ChoreAssignment, ChoreStatus
from ..models import utcnow
from .child_service import ensure_family_children, update_child_points
from .errors import ServiceError, NotFoundError, CHILD_NOT_FOUND, CHORE_NOT_FOUND, CHORE_NOT_SUBMITTED

logger = logging.getLogger(__name__)

_UNSET = object()


def _replace_assignments(db: Session, chore: Chore, assigned_to: Iterable[str]) -> None:
    # wholesale replace: delete every row, then insert the new set; ids are already
    # checked against the family and the caller commits
    chore.assignments.clear()
    db.flush()
    chore.assignments.extend(ChoreAssignment(child_id=child_id) for child_id in assigned_to)


def _apply_submission(
    chore: Chore,
    submitted_by: str | None,
    submitted_at: datetime | None = None,
    emotion: str | None = None,
    photo_url: str | None = None,
) -> None:
    if submitted_by:
        chore.submitted_by_child_id = submitted_by
        chore.submitted_at = submitted_at or utcnow()
        chore.emotion = emotion
        chore.photo_url = photo_url
    else:
        chore.submitted_by_child_id = None
        chore.submitted_at = None
        chore.emotion = None
        chore.photo_url = None


def get_chore(db: Session, family_id: str, chore_id: str) -> Chore | None:
    return db.execute(
        select(Chore)
        .where(Chore.id == chore_id, Chore.family_id == family_id)
        .options(selectinload(Chore.assignments))
    ).scalar_one_or_none()


def save_chore(
    db: Session, *,
    family_id: str,
    name: str,
    points: int,
    assigned_to: Iterable[str] = (),
    chore_id: str | None = None,
    status: ChoreStatus | str | None = None,
    submitted_by: str | None = None,
    submitted_at: datetime | None = None,
    emotion: str | None = None,
    photo_url: str | None = None,
) -> str:
    chore = None
    if chore_id:
        chore = get_chore(db, family_id, chore_id)
        if not chore:
            raise NotFoundError(CHORE_NOT_FOUND, "Chore not found.")

    status = ChoreStatus(status) if status else ChoreStatus.AVAILABLE
    if not submitted_by or status == ChoreStatus.AVAILABLE:
        # an available chore has no submission, and a chore without a submitter is available
        status = ChoreStatus.AVAILABLE
        submitted_by = None
    assigned_to = ensure_family_children(db, family_id, assigned_to)
    if submitted_by:
        ensure_family_children(db, family_id, [submitted_by])

    if chore is None:
        chore = Chore(family_id=family_id)
        db.add(chore)
    chore.name = name
    chore.points = points
    chore.status = status
    _apply_submission(chore, submitted_by, submitted_at, emotion, photo_url)
    try:
        _replace_assignments(db, chore, assigned_to)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Saving chore in family {family_id} failed", exc_info=True)
        raise
    return chore.id


def update_chore(
    db: Session, *,
    family_id: str,
    chore_id: str,
    name: str | None = None,
    points: int | None = None,
    assigned_to: Iterable[str] | None = None,
    status: ChoreStatus | str | None = None,
    submitted_by=_UNSET,
    emotion=_UNSET,
    photo_url=_UNSET,
) -> str:
    """Partial update: anything left out keeps its stored value.

    Naming a new submitter stamps the submission time with now.
    """
    existing = get_chore(db, family_id, chore_id)
    if not existing:
        raise NotFoundError(CHORE_NOT_FOUND, "Chore not found.")

    new_submitter = existing.submitted_by_child_id if submitted_by is _UNSET else submitted_by
    return save_chore(
        db,
        family_id=family_id,
        chore_id=chore_id,
        name=name if name is not None else existing.name,
        points=points if points is not None else existing.points,
        assigned_to=assigned_to if assigned_to is not None else [a.child_id for a in existing.assignments],
        status=status or existing.status,
        submitted_by=new_submitter,
        submitted_at=utcnow() if submitted_by not in (_UNSET, None) else existing.submitted_at,
        emotion=existing.emotion if emotion is _UNSET else emotion,
        photo_url=existing.photo_url if photo_url is _UNSET else photo_url,
    )


def remove_chore(db: Session, family_id: str, chore_id: str) -> None:
    db.execute(
        delete(ChoreAssignment).where(
            ChoreAssignment.chore_id.in_(
                select(Chore.id).where(Chore.id == chore_id, Chore.family_id == family_id)
            )
        )
    )
    db.execute(delete(Chore).where(Chore.id == chore_id, Chore.family_id == family_id))
    db.commit()


def submit_chore_for_approval(
    db: Session, *,
    family_id: str,
    chore_id: str,
    child_id: str,
    emotion: str | None = None,
    photo_url: str | None = None,
    submitted_at: datetime | None = None,
) -> Chore | None:
    # no check on the current status: a submitted or approved chore may be resubmitted
    chore = db.execute(
        select(Chore).where(Chore.id == chore_id, Chore.family_id == family_id)
    ).scalar_one_or_none()
    if not chore:
        return None
    ensure_family_children(db, family_id, [child_id])
    chore.status = ChoreStatus.SUBMITTED
    _apply_submission(chore, child_id, submitted_at, emotion, photo_url)
    db.commit()
    db.refresh(chore)
    logger.info(f"Chore {chore_id} submitted by child {child_id}")
    return chore


def approve_chore(db: Session, family_id: str, chore_id: str) -> Chore:
    chore = db.execute(
        select(Chore).where(Chore.id == chore_id, Chore.family_id == family_id).with_for_update()
    ).scalar_one_or_none()
    if not chore or chore.status != ChoreStatus.SUBMITTED or not chore.submitted_by_child_id:
        raise ServiceError(CHORE_NOT_SUBMITTED, "This chore has not been submitted for approval.")

    try:
        chore.status = ChoreStatus.APPROVED
        if not update_child_points(db, family_id, chore.submitted_by_child_id, chore.points):
            raise NotFoundError(CHILD_NOT_FOUND, "Child not found.")
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.error(f"Approving chore {chore_id} failed", exc_info=True)
        raise
    db.refresh(chore)
    logger.info(f"Chore {chore_id} approved, {chore.points} points to child {chore.submitted_by_child_id}")
    return chore


def reject_chore(db: Session, family_id: str, chore_id: str) -> Chore | None:
    chore = db.execute(
        select(Chore).where(Chore.id == chore_id, Chore.family_id == family_id)
    ).scalar_one_or_none()
    if not chore:
        return None
    chore.status = ChoreStatus.AVAILABLE
    _apply_submission(chore, None)
    db.commit()
    db.refresh(chore)
    return chore
