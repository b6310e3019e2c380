#!/usr/bin/env python3
"""
Maintenance commands for VocaboPlay.

- create-admin: add an admin account (admins cannot sign up through the API)
- seed-words: load the starter vocabulary into the word library

Usage:
    python scripts/manage.py create-admin admin@example.com 'StrongPass123'
    python scripts/manage.py seed-words
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from app.security import hash_password, is_strong_enough, is_valid_email  # noqa: E402
from config.settings import get_settings  # noqa: E402
from models import create_user, init_db, seed_vocabulary  # noqa: E402

logger = logging.getLogger("vocaboplay.manage")


def create_admin(email: str, password: str) -> int:
    if not is_valid_email(email):
        logger.error("Invalid email address: %s", email)
        return 1
    if not is_strong_enough(password, get_settings().PASSWORD_MIN_LENGTH):
        logger.error("Password is too weak")
        return 1
    try:
        user = create_user(email=email, password_hash=hash_password(password), role="admin")
    except ValueError as exc:
        logger.error("Could not create admin: %s", exc)
        return 1
    logger.info("Created admin %s (%s)", user.email, user.id)
    return 0


def seed_words() -> int:
    added = seed_vocabulary()
    logger.info("Vocabulary seeded successfully (%s words)", added)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="VocaboPlay maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("email")
    admin_parser.add_argument("password")

    subparsers.add_parser("seed-words", help="Load the starter vocabulary")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    init_db()

    if args.command == "create-admin":
        return create_admin(args.email, args.password)
    return seed_words()


if __name__ == "__main__":
    sys.exit(main())
