"""
Initialize database and create first superuser.

Run this script once to set up the database:
    python init_db.py

The superuser password is read from VISITRACK_ADMIN_PASSWORD, or generated
and printed once when unset.
"""

import os
import secrets

from visitrack.database import SessionLocal, create_tables
from visitrack.models import User
from visitrack.core.security import get_password_hash


def init_database():
    """Create all database tables"""
    print("Creating database tables...")
    create_tables()
    print("Database tables created successfully!")


def create_superuser():
    """Create the first superuser"""
    db = SessionLocal()

    try:
        if db.query(User).first():
            print("Users already exist in the database.")
            print("Skipping superuser creation.")
            return

        username = os.getenv("VISITRACK_ADMIN_USERNAME", "admin")
        email = os.getenv("VISITRACK_ADMIN_EMAIL", "admin@example.com")
        password = os.getenv("VISITRACK_ADMIN_PASSWORD") or secrets.token_urlsafe(12)

        superuser = User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            is_active=True,
            is_superuser=True
        )

        db.add(superuser)
        db.commit()

        print("\n" + "=" * 50)
        print("Superuser created successfully!")
        print("=" * 50)
        print(f"Username: {username}")
        print(f"Email: {email}")
        if not os.getenv("VISITRACK_ADMIN_PASSWORD"):
            print(f"Password: {password}")
            print("\nIMPORTANT: Store this password now, it is not shown again.")
        print("=" * 50)

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("=" * 50)
    print("Visitrack - Database Initialization")
    print("=" * 50)

    init_database()
    create_superuser()

    print("\nDatabase initialization complete!")
    print("\nYou can now start the server with:")
    print("    uvicorn visitrack.main:app --reload")
