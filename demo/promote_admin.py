#!/usr/bin/env python3
"""Promote an existing user to ADMIN. Run on the server.

Usage:
    python demo/promote_admin.py admin@example.com
"""
import argparse
import asyncio

from sqlalchemy import update

from app.database import AsyncSessionLocal, engine
from app.models.user import User, UserRole


async def promote(email: str) -> None:
    async with AsyncSessionLocal() as s:
        r = await s.execute(
            update(User)
            .where(User.email == email)
            .values(role=UserRole.ADMIN)
        )
        await s.commit()
        print(f"Rows updated: {r.rowcount}")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    asyncio.run(promote(parser.parse_args().email))
