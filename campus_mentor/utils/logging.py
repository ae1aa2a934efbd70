# campus_mentor/utils/logging.py
import logging


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # pymongo's heartbeat chatter drowns the request logs at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
