"""CLI script to grant a role to an existing user.

This is the only way to create a `super_admin`; the role-management
endpoint refuses to assign it.
Usage: python scripts/grant_role.py USERNAME ROLE
"""
import sys
import argparse
import pathlib
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from handrest.database import engine, create_db_and_tables
from handrest import models, repositories


def main(username: str, role: str) -> int:
    """Add a `UserRole` row for `username`; returns a process exit code."""
    try:
        app_role = models.AppRole(role)
    except ValueError:
        print(f"Unknown role {role!r}; choose from {', '.join(r.value for r in models.AppRole)}")
        return 2
    create_db_and_tables()
    with Session(engine) as session:
        user = repositories.UserRepository(session).get_by_username(username)
        if not user:
            print(f"User not found: {username}")
            return 1
        role_repo = repositories.RoleRepository(session)
        if app_role.value in role_repo.roles_for_user(user.id):
            print(f"{username} already has role {app_role.value}")
            return 0
        grant = role_repo.create(models.UserRole(user_id=user.id, role=app_role.value))
        print(f"Granted {app_role.value} to {username} (role_id={grant.id})")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('role', help='super_admin, admin, staff or customer')
    args = parser.parse_args()
    sys.exit(main(args.username, args.role))
