"""Database session dependency injection for FastAPI routes.

Each request gets its own session; that session is the explicit context
handed to every service function the request calls. It is committed when
the handler returns and rolled back on any exception, so a service's
read-check-write sequence runs in one database transaction.

Usage in routes:
    from piggy.database.session import DbSession

    @router.get("/{user_id}")
    async def get_user(user_id: str, db: DbSession):
        return await users_service.get_user(db, user_id)

Usage outside a request:
    from piggy.database.connection import get_session

    async with get_session() as session:
        ...
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.database.connection import get_session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped database session with auto-commit/rollback."""
    session_factory = await get_session_factory()

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection - use this in route signatures
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
