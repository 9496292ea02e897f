import json
import sys

from app.db.session import SessionLocal
from app.services.admin_service import list_families_for_admin


def main(limit: int = 10):
    with SessionLocal() as db:
        families = list_families_for_admin(db)[:limit]
    print(json.dumps([f.dump() for f in families], indent=2))


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 10)
