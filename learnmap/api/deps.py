"""API dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnmap.core.auth import get_auth_user
from learnmap.core.database import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_session():
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db)]

# Acting user id (X-User-Id header or the configured default)
CurrentUser = Annotated[str, Depends(get_auth_user)]
