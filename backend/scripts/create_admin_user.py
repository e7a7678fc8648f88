"""
Script to create the first admin user.
Run this after migrations. Admins are the only accounts created without an invite link.
"""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from kindred.core.database import SessionLocal
from kindred.core.errors import KindredError
from kindred.core.timeutils import utcnow
from kindred.models.user import User, UserRole
from kindred.services import identity as identity_provider


def create_admin_user(email: str, password: str) -> bool:
    """Create an identity and an ADMIN user for it."""
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email.strip().lower()).first():
            print(f"User with email {email} already exists!")
            return False

        try:
            identity = identity_provider.create_identity(email, password, metadata={"role": UserRole.ADMIN.value})
        except KindredError as e:
            print(f"Error creating identity: {e.message}")
            return False

        admin = User(
            id=identity.id,
            email=identity.email,
            role=UserRole.ADMIN,
            is_active=True,
            email_verified_at=utcnow(),
        )
        db.add(admin)
        try:
            db.commit()
        except Exception:
            db.rollback()
            identity_provider.delete_identity(identity.id)
            raise

        print("Admin user created successfully!")
        print(f"   Email: {identity.email}")
        print(f"   ID: {identity.id}")
        return True
    finally:
        db.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Create admin user')
    parser.add_argument('--email', required=True, help='Admin email')
    parser.add_argument('--password', required=True, help='Admin password (min 8 characters)')

    args = parser.parse_args()
    sys.exit(0 if create_admin_user(args.email, args.password) else 1)
