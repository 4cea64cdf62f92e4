#!/usr/bin/env python3
"""
Bootstrap Script - create the first admin account.

Admins create every other account through the API, so a fresh
installation needs one admin created from the command line.

Usage:
    python scripts/create_admin.py --email admin@college.edu --name "CSE Admin" \
        --department CSE --password "a-strong-password"
"""
import sys
import argparse
sys.path.insert(0, '.')

from sqlalchemy import text

from projexa.core.auth import hash_password
from projexa.core.logging import configure_logging
from projexa.db.postgres import get_db_session, init_schema


def create_admin(email: str, name: str, department: str, password: str) -> int:
    """Insert an admin user and return its id. Raises ValueError if the email exists."""
    with get_db_session() as db:
        existing = db.execute(
            text("SELECT user_id FROM users WHERE email = :email"), {"email": email}
        ).fetchone()
        if existing:
            raise ValueError(f"A user with email {email} already exists")

        result = db.execute(
            text("""
                INSERT INTO users (email, password_hash, name, role, department, is_active)
                VALUES (:email, :password_hash, :name, 'admin', :department, TRUE)
                RETURNING user_id
            """),
            {
                "email": email,
                "password_hash": hash_password(password),
                "name": name,
                "department": department
            }
        )
        return result.fetchone()[0]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a Projexa admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--department", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    if len(args.password) < 8:
        print("❌ Password must be at least 8 characters")
        return 1

    configure_logging()
    init_schema()

    try:
        user_id = create_admin(args.email, args.name, args.department, args.password)
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    print(f"✅ Admin created (user_id={user_id}, department={args.department})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
