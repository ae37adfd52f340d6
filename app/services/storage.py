import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from app.services.errors import StorageFailureError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(operation: str) -> Iterator[None]:
    """Report any database error raised inside the block as ``StorageFailureError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure during %s", operation, exc_info=exc)
        raise StorageFailureError(operation) from exc
