#!/usr/bin/env python3
"""Create a Chirpy user from the command line.

Usage:
    python scripts/create_user.py --email walt@breakingbad.com --password bad-password

    # Also log in and print a token pair:
    python scripts/create_user.py --email walt@breakingbad.com --password bad-password --login

Environment Variables:
    CHIRPY_EMAIL / CHIRPY_PASSWORD: defaults for --email / --password
    DB_URL: PostgreSQL connection string (uses the memory store if not set)
    JWT_SECRET: signing secret used for --login tokens
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


async def create_user(email: str, password: str, *, login: bool = False) -> dict:
    # Import here to avoid loading config before env vars are set
    from chirpy.service.runtime import get_runtime

    runtime = get_runtime()
    user = await runtime.auth.signup(email, password)
    result = {"user_id": str(user.id), "email": user.email}
    if login:
        _, access_token, refresh_token = await runtime.auth.login(email, password)
        result["token"] = access_token
        result["refresh_token"] = refresh_token
    return result


def main():
    parser = argparse.ArgumentParser(
        description="Create a Chirpy user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--email",
        default=os.environ.get("CHIRPY_EMAIL"),
        help="User email (or set CHIRPY_EMAIL env var)",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("CHIRPY_PASSWORD"),
        help="User password (or set CHIRPY_PASSWORD env var)",
    )
    parser.add_argument(
        "--login",
        action="store_true",
        help="Log the new user in and print the issued tokens",
    )

    args = parser.parse_args()

    if not args.email:
        print("Error: --email or CHIRPY_EMAIL environment variable required")
        sys.exit(1)

    if not args.password:
        print("Error: --password or CHIRPY_PASSWORD environment variable required")
        sys.exit(1)

    if not os.environ.get("DB_URL"):
        os.environ["USE_MEMORY_STORE"] = "true"
        print("Note: Using in-memory store (set DB_URL for persistence)")

    from chirpy.service.errors import ServiceError

    try:
        result = asyncio.run(create_user(args.email, args.password, login=args.login))
    except ServiceError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(f"Created user: {result['email']} (id: {result['user_id']})")
    if result.get("token"):
        print(f"  Access Token: {result['token']}")
        print(f"  Refresh Token: {result['refresh_token']}")


if __name__ == "__main__":
    main()
