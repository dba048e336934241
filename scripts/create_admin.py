"""
scripts/create_admin.py — Bootstrap the admin account
======================================================
Removes any existing admin accounts and creates a fresh one.

Run from the project root:
    python -m scripts.create_admin --email admin@example.org --password 'secret123'
"""

import argparse
import asyncio
import logging

from sqlalchemy import delete

from core.roles import AdminRole
from db.models import User
from db.session import AsyncSessionLocal, close_db, init_db
from modules.users import create_user

logger = logging.getLogger("jataayu.scripts.create_admin")


async def create_admin(name: str, email: str, password: str) -> User:
    await init_db()
    async with AsyncSessionLocal() as db:
        result = await db.execute(delete(User).where(User.role == "admin"))
        logger.info(f"Removed {result.rowcount} existing admin account(s)")
        user = await create_user(db, name, email, password, AdminRole(role="admin"))
    await close_db()
    return user


def main():
    parser = argparse.ArgumentParser(description="Create the Jataayu admin account")
    parser.add_argument("--name", default="Admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    user = asyncio.run(create_admin(args.name, args.email, args.password))
    logger.info(f"Admin account ready: {user.email} ({user.id})")


if __name__ == "__main__":
    main()
