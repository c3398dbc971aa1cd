# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite storage layer: connection lifecycle, prepared statements and schema.
"""

from .errors import (
    BindError,
    CompileError,
    ExecuteError,
    OpenError,
    SchemaError,
    StatementDestroyedError,
    StoreError,
    UnsupportedBindTypeError,
)
from .schema import INSERT_SQL, SELECT_ALL_SQL, TABLE_NAME, ensure_table
from .sqlite_client import IN_MEMORY, SQLiteClient, open_store
from .statement import PreparedStatement, StatementState
from .values import Row, Value, ValueType

__all__ = [
    "BindError",
    "CompileError",
    "ExecuteError",
    "OpenError",
    "SchemaError",
    "StatementDestroyedError",
    "StoreError",
    "UnsupportedBindTypeError",
    "INSERT_SQL",
    "SELECT_ALL_SQL",
    "TABLE_NAME",
    "ensure_table",
    "IN_MEMORY",
    "SQLiteClient",
    "open_store",
    "PreparedStatement",
    "StatementState",
    "Row",
    "Value",
    "ValueType",
]
