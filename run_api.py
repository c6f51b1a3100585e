"""
Start the Choir Hub API with uvicorn.

Host, port, reload and the database location come from the environment
(or .env), see choirhub/config.py.
"""

import logging
import sys

from choirhub.config import settings
from choirhub.main import run


def main() -> None:
    try:
        run()
    except Exception:
        logging.basicConfig(level=logging.ERROR)
        logging.exception("choirhub API failed to start")
        print(f"\nAPI failed to start on {settings.host}:{settings.port}.")
        print(f"   database: {settings.resolved_database_url}")
        print("   Check DATABASE_URL / DB_PATH, PORT, and that dependencies are installed.\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
