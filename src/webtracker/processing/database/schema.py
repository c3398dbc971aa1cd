# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Schema for the tab log.

One append-only table. Rows are never updated; the url column is the
identity key used for deduplication but is not unique in storage.
"""

import logging

from .errors import SchemaError, StoreError
from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

TABLE_NAME = "data"

COLUMNS = ("url", "title", "incognito", "time", "date")

CREATE_TABLE_SQL = (
    f"create table {TABLE_NAME}"
    "(url varchar, title varchar, incognito int, time varchar, date varchar);"
)

INSERT_SQL = f"insert into {TABLE_NAME} values(?, ?, ?, ?, ?);"

SELECT_ALL_SQL = f"select * from {TABLE_NAME};"


def ensure_table(client: SQLiteClient) -> bool:
    """
    Create the tab table unless it already exists.

    Args:
        client: Open SQLiteClient

    Returns:
        True if the table was created, False if it already existed

    Raises:
        SchemaError: If creation failed for any other reason
    """
    try:
        with client.prepare(CREATE_TABLE_SQL) as statement:
            statement.execute_for_effect()
    except StoreError as e:
        if "already exists" in e.message:
            logger.debug(f"Table {TABLE_NAME} already exists")
            return False
        raise SchemaError(e.message, e.code) from e

    logger.info(f"Created table {TABLE_NAME}")
    return True
