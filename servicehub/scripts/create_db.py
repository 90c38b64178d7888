"""Create database tables for the Service Hub backend."""

from __future__ import annotations

import logging

from servicehub.core.db import engine
from servicehub.models import Base


logger = logging.getLogger("scripts.create_db")


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified.")


if __name__ == "__main__":
    main()
