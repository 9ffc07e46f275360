"""Script to create the booking schema without running migrations."""

import asyncio

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Create every booking table, index and constraint."""
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.exec_driver_sql('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Booking schema created successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
