import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    resolved_level = logging.getLevelName(level.upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"Unknown log level '{level}'.")

    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)
    logging.getLogger("app").setLevel(resolved_level)
    # SQL echo stays off unless explicitly requested through sqlalchemy's own logger.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
