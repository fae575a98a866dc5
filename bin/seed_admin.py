# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the first admin account.

Registration through the API always produces a ``guest``, and only an admin
can change roles, so the very first admin has to be created out of band.
Run once after the initial migration:

    python bin/seed_admin.py

Reads FIRST_ADMIN_NAME, FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD from
etc/app.conf.  Running it again is harmless: an existing account with that
email is left untouched.
"""

import os
import sys

# bin/seed_admin.py  →  ../backend
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from auth.service import normalize_email    # noqa: E402
from core.config import settings            # noqa: E402
from core.logger import logger              # noqa: E402
from core.security import hash_password     # noqa: E402
from database import SessionLocal, atomic   # noqa: E402
from models import Role, User               # noqa: E402


def seed() -> int:
    email = normalize_email(settings.first_admin_email)
    if not email or not settings.first_admin_password:
        logger.warning("seed_admin: FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set – nothing to do")
        return 1
    if len(settings.first_admin_password) < settings.min_password_length:
        logger.error("seed_admin: FIRST_ADMIN_PASSWORD is shorter than %d characters", settings.min_password_length)
        return 1

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            logger.info("seed_admin: '%s' already exists (role=%s) – skipping", email, existing.role.value)
            return 0

        with atomic(db):
            db.add(User(
                name=settings.first_admin_name,
                email=email,
                password_hash=hash_password(settings.first_admin_password),
                role=Role.admin,
            ))
        logger.info("seed_admin: admin '%s' created", email)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(seed())
