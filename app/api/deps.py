from dataclasses import dataclass
from typing import Generator, Optional
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from ..core.config import settings
from ..db.session import SessionLocal
from ..models.auth import FamilySession
from ..services.family_service import normalize_email
from ..services.session_service import get_session
from ..utils.timestamps import as_utc


@dataclass(frozen=True)
class Principal:
    """The family behind a valid session cookie."""

    family_id: str
    email: str
    family_name: str
    token: str
    is_admin: bool = False


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def resolve_principal(db: Session, token: Optional[str]) -> Optional[Principal]:
    session = get_session(db, token)
    if not session:
        return None
    family = session.family
    # the admin claim is settled here, once per request
    return Principal(
        family_id=family.id,
        email=family.email,
        family_name=family.family_name,
        token=session.token,
        is_admin=normalize_email(family.email) == normalize_email(settings.ADMIN_EMAIL),
    )


def get_principal(request: Request, db: Session = Depends(get_db)) -> Optional[Principal]:
    return resolve_principal(db, request.cookies.get(settings.SESSION_COOKIE_NAME))


def require_session(principal: Optional[Principal] = Depends(get_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthenticated.")
    return principal


def require_admin(principal: Optional[Principal] = Depends(get_principal)) -> Principal:
    principal = require_session(principal)
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden.")
    return principal


def set_session_cookie(response: Response, session: FamilySession) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        expires=as_utc(session.expires_at),
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
