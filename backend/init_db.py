#!/usr/bin/env python3
# backend/init_db.py
"""
Create the funds table.

Run from any directory:
    python backend/init_db.py
"""
import logging
import sys
from pathlib import Path

# Make the 'navsync' package importable when run as a script
sys.path.insert(0, str(Path(__file__).parent))

from navsync.database import engine
from navsync.models import Base
from navsync.utils import setup_logging

logger = logging.getLogger("init_db")


def init_db() -> None:
    """Create all tables defined in navsync.models."""
    setup_logging()
    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables created: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    init_db()
