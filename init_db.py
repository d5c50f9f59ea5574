"""
Initialize database - create all tables
Run this script to set up the database for the first time
"""
import asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from app.core.config import settings
from app.models import Base


async def init_database(drop_existing: bool = False):
    """Create all database tables"""
    print("Connecting to database...")
    print(f"Database URL: {settings.DATABASE_URL.split('@')[-1]}")

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=True,
    )

    async with engine.begin() as conn:
        if drop_existing:
            print("Dropping all tables...")
            await conn.run_sync(Base.metadata.drop_all)

        print("Creating all tables...")
        await conn.run_sync(Base.metadata.create_all)

    await engine.dispose()
    print("Database initialized successfully!")


if __name__ == "__main__":
    import sys
    asyncio.run(init_database(drop_existing="--drop" in sys.argv))
