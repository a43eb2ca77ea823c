import argparse
from pathlib import Path

from fastapi import HTTPException
from pydantic import ValidationError

from api.database import SessionLocal, init_db
from api.models import TestPayload
from api.services.content_service import list_tests, save_test_payload
from api.services.entitlement_service import set_subscription
from api.utils import json_load, validate_id, validate_test_id
from core.logging_setup import setup_console_logging

setup_console_logging()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage test content and accounts")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Validate a test JSON file and add it to the content store")
    import_cmd.add_argument("file", type=Path, help="Path to a test JSON file")
    import_cmd.add_argument(
        "--category",
        type=str,
        default=None,
        help="Override the category stored in the file",
    )

    list_cmd = commands.add_parser("list", help="List tests in a category")
    list_cmd.add_argument("category", type=str)

    sub_cmd = commands.add_parser("subscription", help="Turn a user's subscription on or off")
    sub_cmd.add_argument("user_id", type=str)
    sub_cmd.add_argument("--off", action="store_true", help="Deactivate instead of activate")

    return parser.parse_args(argv)


def import_test(file: Path, category: str | None = None) -> TestPayload:
    data = json_load(file.read_text(encoding="utf-8"))
    if category:
        data["category"] = category
    payload = TestPayload.model_validate(data)
    validate_id("category", payload.category)
    validate_test_id(payload.id)
    save_test_payload(payload)
    return payload


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        if args.command == "import":
            payload = import_test(args.file, args.category)
            print(f"Saved {payload.category}/{payload.id} ({len(payload.questions)} questions)")
        elif args.command == "list":
            for meta in list_tests(validate_id("category", args.category)):
                print(f"{meta.id}\t{meta.questionCount}\t{meta.name}")
        elif args.command == "subscription":
            user_id = validate_id("userId", args.user_id)
            init_db()
            db = SessionLocal()
            try:
                limits = set_subscription(db, user_id, not args.off)
            finally:
                db.close()
            print(
                f"{user_id}: subscriptionActive={limits['subscriptionActive']} "
                f"remainingFreeQuestions={limits['remainingFreeQuestions']}"
            )
    except (ValidationError, ValueError) as exc:
        print(f"Invalid test file: {exc}")
        return 1
    except HTTPException as exc:
        print(f"Error: {exc.detail}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
