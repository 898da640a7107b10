import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from user_registry.store import RecordStore, resolve_store_path
from user_registry.users import UserService, UserServiceError


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a user in the user registry")
    parser.add_argument("first_name", help="Given name of the user")
    parser.add_argument("last_name", help="Family name of the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("--phone", default=None, help="Contact phone number")
    parser.add_argument("--address", default=None, help="Postal address")
    parser.add_argument("--date-of-birth", dest="date_of_birth", default=None, help="Date of birth (YYYY-MM-DD)")
    parser.add_argument(
        "--data-file",
        dest="data_file",
        default=None,
        help="Path to the JSON store (defaults to USER_REGISTRY_DATA_FILE or data/users.json)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    data_env = args.data_file or os.getenv("USER_REGISTRY_DATA_FILE")
    store = RecordStore(resolve_store_path(data_env))
    store.initialize()
    service = UserService(store)

    try:
        user = service.create_user(
            {
                "first_name": args.first_name,
                "last_name": args.last_name,
                "email": args.email,
                "phone": args.phone,
                "address": args.address,
                "date_of_birth": args.date_of_birth,
            }
        )
    except UserServiceError as exc:  # missing fields, duplicates
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.first_name} {user.last_name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
