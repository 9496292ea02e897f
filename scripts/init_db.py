from app.core.logging import configure_logging
from app.db.session import engine, SessionLocal
from app.db.base import Base
from app.services.session_service import purge_expired_sessions


def init():
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        return purge_expired_sessions(db)


if __name__ == "__main__":
    configure_logging()
    purged = init()
    print(f"Database schema created. {purged} expired session(s) purged.")
