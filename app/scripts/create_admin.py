"""
Provision an admin account (public registration cannot create admins).
Run from project root:
  python -m app.scripts.create_admin USERNAME PASSWORD [--email EMAIL]
"""
import argparse
import sys

from sqlmodel import Session

from app.core.errors import DuplicateUsername
from app.database import create_db_and_tables, engine
from app.models import upload as _upload_models  # noqa: F401
from app.repositories.user_repo import UserRepository


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a PinSync admin account.")
    parser.add_argument("username", help="Username (1-100 chars)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("--email", default="", help="Optional contact email")
    args = parser.parse_args(argv)

    username = args.username.strip()
    if not username or len(username) > 100:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if len(args.password) < 8 or len(args.password) > 128:
        print("Password must be 8-128 characters.", file=sys.stderr)
        return 1

    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = UserRepository().create_user(
                session,
                username=username,
                email=args.email.strip(),
                credential=args.password,
                role="admin",
            )
        except DuplicateUsername:
            print(f"User '{username}' already exists.", file=sys.stderr)
            return 1
    print(f"Created admin '{user.username}' (id {user.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
