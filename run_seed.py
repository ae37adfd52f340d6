import asyncio
import logging

from app.core.config import get_settings
from app.core.db import close_engine, get_session_factory, init_engine
from app.core.logging import configure_logging
from app.infra.db.seed import seed_default_accounts

logger = logging.getLogger("run_seed")


async def main() -> None:
    engine = init_engine()
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            await seed_default_accounts(session)
            await session.commit()
        logger.info("Default accounts loaded")
    finally:
        await close_engine(engine)


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    asyncio.run(main())
