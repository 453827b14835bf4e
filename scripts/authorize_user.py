from __future__ import annotations

import argparse
import asyncio

from experiment_tracker.core.access_gate import access_gate
from experiment_tracker.core.errors import DuplicateError
from experiment_tracker.core.logging import configure_logging
from experiment_tracker.config.settings import settings
from experiment_tracker.db.database import init_db


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add or revoke an experiment tracker allow-list entry")
    parser.add_argument("--github-username", default=None)
    parser.add_argument("--email", default=None)
    parser.add_argument("--revoke", action="store_true", help="mark the user as not authorized")
    args = parser.parse_args()
    if not (args.github_username or args.email):
        parser.error("either --github-username or --email is required")
    return args


async def run(args: argparse.Namespace) -> None:
    await init_db()
    try:
        user = await access_gate.set_authorization(args.github_username, args.email, not args.revoke)
    except DuplicateError as exc:
        raise SystemExit(f"error: {exc.message}") from exc
    state = "authorized" if user["isAuthorized"] else "revoked"
    print(f"{user['githubUsername'] or user['email']}: {state} ({user['id']})")


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(run(parse_args()))


if __name__ == "__main__":
    main()
