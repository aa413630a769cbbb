"""Command line entry point: create tables and optionally seed the catalog.

Usage: python -m wordpath init [catalog.json]
"""
import logging
import sys

from wordpath.catalog_loader import load_catalog_file
from wordpath.config import settings
from wordpath.logging_config import setup_logging
from wordpath.models.base import SessionLocal, init_db

logger = logging.getLogger(__name__)


def main(argv: list[str]) -> int:
    """Run the command given in ``argv``."""
    if not argv or argv[0] != "init":
        print(__doc__.strip().splitlines()[-1], file=sys.stderr)
        return 2

    setup_logging("Initializing wordpath database ...")
    init_db()
    logger.info(f"Database initialized at {settings.database.url}")

    if len(argv) > 1:
        db = SessionLocal()
        try:
            load_catalog_file(db, argv[1])
        finally:
            db.close()
    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
