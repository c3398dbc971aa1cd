#!/usr/bin/env python3
# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Database initialization script for the web tracker.

Writes a default config.yaml (if none exists) and creates the tab table.
"""

import sys
import logging
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from webtracker.capture.config import Config
from webtracker.processing.database.errors import StoreError
from webtracker.processing.database.schema import ensure_table
from webtracker.processing.database.sqlite_client import SQLiteClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Initialize configuration and database."""
    config = Config()

    if not config.config_path.exists():
        config.save_to_file()
        logger.info(f"Wrote default configuration: {config.config_path}")

    logger.info(f"Initializing database: {config.db_path}")

    client = SQLiteClient(config.db_path)
    try:
        with client:
            created = ensure_table(client)
    except StoreError as e:
        logger.error(f"Failed to initialize database: {e.message} (code {e.code})")
        return 1

    if created:
        logger.info("Created tab table")
    else:
        logger.info("Tab table already exists")

    if client.exists():
        logger.info("✅ Database initialized successfully")
        return 0
    else:
        logger.error("❌ Database file was not created")
        return 1


if __name__ == "__main__":
    sys.exit(main())
