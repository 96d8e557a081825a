"""Dependency injection (no auth, handled upstream)"""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.db import session as db_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency; one session per request, closed on exit
    """
    async with db_session.SessionLocal() as session:
        yield session
