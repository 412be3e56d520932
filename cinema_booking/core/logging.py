import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # engine echo still works, it configures its own logger
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
