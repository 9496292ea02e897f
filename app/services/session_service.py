import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.auth import FamilySession
from ..utils.timestamps import as_utc
from .security import generate_session_token

logger = logging.getLogger(__name__)


def create_session(db: Session, family_id: str, *, ttl: timedelta | None = None) -> FamilySession:
    expires_at = datetime.now(timezone.utc) + (ttl if ttl is not None else timedelta(days=settings.SESSION_TTL_DAYS))
    s = FamilySession(family_id=family_id, token=generate_session_token(), expires_at=expires_at)
    db.add(s)
    db.commit()
    db.refresh(s)
    logger.info(f"Session created for family {family_id}, expires {expires_at.isoformat()}")
    return s


def get_session(db: Session, token: str | None) -> FamilySession | None:
    if not token:
        return None
    s = db.execute(select(FamilySession).where(FamilySession.token == token)).scalar_one_or_none()
    if not s:
        return None
    if as_utc(s.expires_at) <= datetime.now(timezone.utc):
        family_id = s.family_id
        db.delete(s)
        db.commit()
        logger.info(f"Expired session removed for family {family_id}")
        return None
    return s


def clear_session(db: Session, token: str | None) -> None:
    if not token:
        return
    db.execute(delete(FamilySession).where(FamilySession.token == token))
    db.commit()


def purge_expired_sessions(db: Session) -> int:
    # loaded rows hold naive datetimes on SQLite, so no in-memory evaluation of the cutoff
    result = db.execute(
        delete(FamilySession)
        .where(FamilySession.expires_at <= datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0
