"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; the whole request is one transaction."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> str | None:
    """Opaque identifier of the caller, recorded on audit rows."""
    if x_actor_id is None or not x_actor_id.strip():
        return None
    return x_actor_id.strip()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ActorId = Annotated[str | None, Depends(get_actor_id)]
