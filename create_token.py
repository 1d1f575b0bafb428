#!/usr/bin/env python3
"""
Issue a bearer token for a user.

Usage:
    python create_token.py --email jane@example.com --days 365
    python create_token.py --email new@example.com --register --first-name New
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from project_tracker_api.app.core.db import init_db
from project_tracker_api.app.core.security import create_access_token
from project_tracker_api.app.schemas.user import UserCreate
from project_tracker_api.app.services.user_service import UserService


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Issue an API token for a user.")
    ap.add_argument("--email", required=True, help="E-mail of the user the token acts for")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days")
    ap.add_argument("--register", action="store_true", help="Create the user if it does not exist")
    ap.add_argument("--first-name", default=None)
    ap.add_argument("--last-name", default=None)
    args = ap.parse_args(argv)

    init_db()
    user = asyncio.run(UserService.get_by_email(args.email))
    if user is None and args.register:
        user = asyncio.run(
            UserService.create_user(
                UserCreate(email=args.email, first_name=args.first_name, last_name=args.last_name)
            )
        )
    if user is None:
        print(f"[!] No user found with email: {args.email} (use --register to create it)", file=sys.stderr)
        sys.exit(2)
    print(create_access_token({"sub": user.email}, expires_delta=args.days * 24 * 60 * 60))


if __name__ == "__main__":
    main()
