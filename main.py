# main.py
import sys

import uvicorn

from campus_mentor.config import settings
from campus_mentor.utils.logging import setup_logging


def main():
    """Run the mentor API"""
    setup_logging(settings.log_level, settings.debug)
    try:
        uvicorn.run(
            "campus_mentor.api.server:app",
            host=settings.host,
            port=settings.port,
            reload=settings.debug,
        )
    except KeyboardInterrupt:
        sys.exit(0)

if __name__ == "__main__":
    main()
