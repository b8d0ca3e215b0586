"""
Create a user (e.g. the first admin) without going through the API. Run from project root:
  python -m taskapi.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m taskapi.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from taskapi.core.config import get_settings
from taskapi.core.database import Database
from taskapi.core.errors import DatabaseUnavailableError, TaskApiError
from taskapi.core.logging import configure_logging
from taskapi.services.users import USER_ROLES, register_user

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Task Manager user.")
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password")
    parser.add_argument("role", nargs="?", default="user", choices=sorted(USER_ROLES))
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    username = args.username.strip()
    if not username or len(username) > 255:
        print("Invalid username length.", file=sys.stderr)
        return 1

    try:
        database = Database.from_settings(settings)
        database.check()
    except DatabaseUnavailableError as e:
        logger.error("%s", e)
        return 1

    db = database.session()
    try:
        user = register_user(
            db,
            settings,
            username=username,
            email=args.email.strip(),
            password=args.password,
            role=args.role,
        )
    except TaskApiError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
        database.dispose()
    print(f"Created user '{user.username}' ({user.email}) with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
