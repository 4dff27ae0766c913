"""
Create or promote an admin account.
Usage: python create_admin.py <email> <name> [password]
"""

import getpass
import logging
import sys

from sap_awards import models_certificate, models_outbox  # noqa: F401
from sap_awards.auth import hash_password
from sap_awards.database import Base, SessionLocal, engine
from sap_awards.models import User
from sap_awards.shared.validators import validate_email

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_admin(email: str, name: str, password: str) -> User:
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        email = validate_email(email)
        user = db.query(User).filter(User.email == email).first()
        if user:
            user.role = "admin"
            user.is_active = True
            user.password_hash = hash_password(password)
            logger.info(f"⬆️ Promoted existing user {email} to admin")
        else:
            user = User(name=name, email=email, password_hash=hash_password(password), role="admin")
            db.add(user)
            logger.info(f"✅ Created admin {email}")
        db.commit()
        return user
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    password = sys.argv[3] if len(sys.argv) > 3 else getpass.getpass("Password: ")
    if len(password) < 8:
        logger.error("❌ Password must be at least 8 characters")
        sys.exit(1)
    create_admin(sys.argv[1], sys.argv[2], password)
