#!/usr/bin/env python3
"""
Seed the identity directory with test users and a few friend requests.

Usage:
    python scripts/seed_db.py
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import logging
logging.basicConfig(level=logging.INFO)

from database import AsyncSessionLocal, engine, Base
from config import get_settings
from errors import FriendshipError
from services.container import build_services

settings = get_settings()

TEST_USERS = ["alice", "bob", "carol", "dave", "erin"]

TEST_REQUESTS = [
    ("alice", "bob"),
    ("carol", "bob"),
    ("dave", "alice"),
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    services = build_services(AsyncSessionLocal, settings)
    for username in TEST_USERS:
        await services.directory.register(username)
        print(f"  [ok] {username}")

    for sender, receiver in TEST_REQUESTS:
        try:
            request_id = await services.workflow.send_request(sender, receiver)
            print(f"  [ok] {sender} -> {receiver} ({request_id})")
        except FriendshipError as e:
            print(f"  [skip] {sender} -> {receiver}: {e.kind}")

    await engine.dispose()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
