"""
Create Database Tables Using SQLAlchemy

Creates the compliance schema directly with SQLAlchemy's create_all().
Useful for local development and test databases.
"""
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect

from src.compliance_engine.db.session import create_all_tables, get_engine
from src.compliance_engine.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    setup_logging()
    try:
        create_all_tables()
    except Exception as e:
        logger.error("table_creation_failed", error=str(e), error_type=type(e).__name__)
        raise

    tables = sorted(inspect(get_engine()).get_table_names())
    logger.info("tables_verified", count=len(tables), tables=tables)


if __name__ == "__main__":
    main()
