#!/usr/bin/env python3
"""
make_admin.py — Promote an existing account to the ADMIN role.

Usage:
    python scripts/make_admin.py someone@example.com

The user must already have registered through POST /auth/register.
"""

import asyncio
import sys

from motor.motor_asyncio import AsyncIOMotorClient

from green_epidemic.core.config import settings


async def promote(email: str) -> int:
    client = AsyncIOMotorClient(settings.mongo_uri)
    try:
        result = await client[settings.mongo_db_name]["users"].update_one(
            {"email": email}, {"$set": {"role": "ADMIN"}}
        )
    finally:
        client.close()

    if result.matched_count == 0:
        print(f"No user with email {email}")
        return 1
    print(f"{email} is now an ADMIN")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(promote(sys.argv[1])))
