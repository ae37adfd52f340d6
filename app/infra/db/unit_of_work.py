from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


class SqlAlchemyUnitOfWork:
    """Groups conversation and ledger writes into one transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
