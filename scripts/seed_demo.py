#!/usr/bin/env python3
"""
Seed a demo agent, customers and property, and print bearer tokens for them.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --customers 5 --title "Harbour Loft"

Environment Variables:
    DATABASE_URL: Database to seed
    JWT_SECRET_KEY: Secret used to sign the printed tokens
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from uuid import uuid4

import dotenv
from sqlalchemy import insert

dotenv.load_dotenv()

from app.core.security import create_access_token  # noqa: E402
from app.database import AsyncSessionLocal, engine  # noqa: E402
from app.models import properties, users  # noqa: E402


def token_for(user_id) -> str:
    return create_access_token(user_id, expires_delta=timedelta(days=7))


async def seed(customers: int, title: str) -> int:
    """Insert demo rows and print their ids and tokens."""
    accounts = [("admin", "Demo Admin"), ("agent", "Demo Agent")] + [
        ("customer", f"Demo Customer {i + 1}") for i in range(customers)
    ]

    created = []
    async with AsyncSessionLocal() as db:
        for role, name in accounts:
            user_id = uuid4()
            await db.execute(
                insert(users).values(
                    id=user_id,
                    email=f"{role}-{user_id.hex[:8]}@example.com",
                    full_name=name,
                    role=role,
                )
            )
            created.append((role, name, user_id))

        agent_id = created[1][2]
        property_id = uuid4()
        await db.execute(
            insert(properties).values(
                id=property_id,
                title=title,
                status="available",
                assigned_agent_id=agent_id,
            )
        )
        await db.commit()
    await engine.dispose()

    print(f"Property: {property_id} ({title})")
    for role, name, user_id in created:
        print(f"{role:<9} {name:<18} {user_id}")
        print(f"          Bearer {token_for(user_id)}")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed demo booking data")
    parser.add_argument("--customers", type=int, default=3, help="Number of customers (default: 3)")
    parser.add_argument("--title", type=str, default="Sunny Two Bedroom", help="Property title")
    args = parser.parse_args()

    if args.customers < 1:
        print("Error: --customers must be at least 1", file=sys.stderr)
        sys.exit(1)

    sys.exit(asyncio.run(seed(args.customers, args.title)))


if __name__ == "__main__":
    main()
