"""
Create every table directly from the models.

For local SQLite databases only; Postgres schemas are managed by Alembic
(``alembic upgrade head``), which also installs the session overlap
exclusion constraint that ``create_all`` cannot express.
"""

import logging

from app.database import Base, engine
import app.models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)


def init_db() -> None:
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
