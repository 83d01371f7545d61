import asyncio

from app.database.base import Base
from app.database.session import engine


async def init_db():
    if engine is None:
        raise SystemExit("DATABASE_URI is not configured")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database tables created successfully!")

if __name__ == "__main__":
    asyncio.run(init_db())
