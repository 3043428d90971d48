#!/usr/bin/env python3
"""Create a user account, optionally with the admin role.

Usage:
    python scripts/create_user.py admin@example.com 'long-password' --name Admin --admin
"""

import argparse
import sys

from sqlalchemy import func, select

from backend.terra_voyage.db.models import User
from backend.terra_voyage.db.session import session_scope
from backend.terra_voyage.models.common import UserRole
from backend.terra_voyage.security.passwords import hash_password, validate_password


def create_user(email: str, password: str, name: str | None = None, admin: bool = False) -> User:
    validate_password(password)
    role = UserRole.admin if admin else UserRole.user

    with session_scope() as session:
        existing = session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        ).scalar_one_or_none()
        if existing is not None:
            if admin and existing.role != role.value:
                existing.role = role.value
                print(f"✓ Promoted {email} to admin")
            else:
                print(f"❌ User {email} already exists")
            return existing

        user = User(
            email=email.lower(),
            name=name,
            password_hash=hash_password(password),
            role=role.value,
        )
        session.add(user)
        session.flush()
        print(f"✅ Created {role.value.lower()} {email}")
        print(f"   User ID: {user.user_id}")
        return user


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name")
    parser.add_argument("--admin", action="store_true", help="grant the admin role")
    args = parser.parse_args()

    try:
        create_user(args.email, args.password, args.name, args.admin)
    except ValueError as e:
        print(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
