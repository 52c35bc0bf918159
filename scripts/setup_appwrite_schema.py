"""
=============================================================================
PORTFOLIO CONTACT API - APPWRITE SCHEMA SETUP
=============================================================================

Creates the contact database, the submissions collection, its attributes and
search indexes. Safe to re-run: anything that already exists is skipped.

Attributes take a few seconds to become available in Appwrite; if an index
fails with "attribute not available", wait and run the script again.

Usage:
    python scripts/setup_appwrite_schema.py
    python scripts/setup_appwrite_schema.py --dry-run
=============================================================================
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

from portfolio_api.core.config import Settings  # noqa: E402
from portfolio_api.core.errors import BackendConfigurationError  # noqa: E402
from portfolio_api.services.adapters.appwrite import create_databases  # noqa: E402
from portfolio_api.services.appwrite_schema import provision_schema  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Provision the Appwrite collection used by the contact form"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the resources that would be created without calling Appwrite",
    )
    parser.add_argument("--database-id", default=None, help="Override APPWRITE_DATABASE_ID")
    parser.add_argument(
        "--collection-id", default=None, help="Override APPWRITE_CONTACT_COLLECTION_ID"
    )
    args = parser.parse_args()

    settings = Settings()
    database_id = args.database_id or settings.APPWRITE_DATABASE_ID
    collection_id = args.collection_id or settings.APPWRITE_CONTACT_COLLECTION_ID

    databases = None
    if not args.dry_run:
        try:
            databases = create_databases(settings)
        except BackendConfigurationError as exc:
            logger.error(str(exc))
            return 1

    report = provision_schema(databases, database_id, collection_id, dry_run=args.dry_run)

    if args.dry_run:
        for label in report.planned:
            print(f"would create {label}")
    else:
        logger.info(
            "Schema ready: %s created, %s already present",
            len(report.created),
            len(report.existing),
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
