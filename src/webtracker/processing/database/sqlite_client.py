# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite connection owner for the web tracker.

One SQLiteClient holds exactly one connection for the lifetime of the
process. Statements prepared from it must be destroyed before the
connection can be closed.
"""

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Set, Union

from .errors import (
    SQLITE_BUSY,
    SQLITE_CANTOPEN,
    SQLITE_MISUSE,
    OpenError,
    StoreError,
    from_sqlite_error,
)

if TYPE_CHECKING:
    from .statement import PreparedStatement

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def decode_text(raw: bytes) -> Union[str, bytes]:
    """Text factory: UTF-8 text as str, undecodable text left as bytes."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


class SQLiteClient:
    """
    SQLite connection with an explicit open/close lifecycle.

    The connection runs in autocommit mode: every statement that finishes
    executing is durable when it returns.
    """

    def __init__(self, db_path: Union[str, Path] = IN_MEMORY):
        """
        Initialize client (does not connect).

        Args:
            db_path: Database file path, or ":memory:" for an in-memory store
        """
        if str(db_path) == IN_MEMORY:
            self.database_name = IN_MEMORY
        else:
            self.database_name = str(Path(db_path).expanduser())
        self._connection: Optional[sqlite3.Connection] = None
        self._statements: Set["PreparedStatement"] = set()

    @property
    def in_memory(self) -> bool:
        return self.database_name == IN_MEMORY

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def sqlite_version(self) -> str:
        return sqlite3.sqlite_version

    @property
    def live_statements(self) -> int:
        return len(self._statements)

    @property
    def connection(self) -> sqlite3.Connection:
        """Live connection. Raises StoreError if the client is not open."""
        if self._connection is None:
            raise StoreError(f"Database is not open: {self.database_name}", SQLITE_MISUSE)
        return self._connection

    def open(self) -> "SQLiteClient":
        """
        Open the connection.

        Returns:
            self, for chaining

        Raises:
            OpenError: If the database cannot be opened or is not a database
        """
        if self._connection is not None:
            return self

        if not self.in_memory:
            try:
                Path(self.database_name).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise OpenError(
                    f"Cannot create directory for {self.database_name}: {e}", SQLITE_CANTOPEN
                ) from e

        try:
            connection = sqlite3.connect(self.database_name, isolation_level=None)
            # Invalid UTF-8 text stays bytes and decodes as a BLOB marker
            connection.text_factory = decode_text
        except sqlite3.Error as e:
            raise from_sqlite_error(e, OpenError) from e

        try:
            # Reads the file header, so a non-database file fails here
            connection.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as e:
            connection.close()
            raise from_sqlite_error(e, OpenError) from e

        self._connection = connection
        logger.info(f"Opened database: {self.database_name} (SQLite {self.sqlite_version})")
        return self

    def close(self) -> None:
        """
        Close the connection.

        Raises:
            StoreError: SQLITE_BUSY if prepared statements are still live
        """
        if self._connection is None:
            return

        if self._statements:
            raise StoreError(
                f"unable to close due to unfinalized statements ({len(self._statements)} live)",
                SQLITE_BUSY,
            )

        try:
            self._connection.close()
        except sqlite3.Error as e:
            raise from_sqlite_error(e) from e
        self._connection = None
        logger.info(f"Closed database: {self.database_name}")

    def exists(self) -> bool:
        """Check whether the database file exists on disk."""
        if self.in_memory:
            return self.is_open
        return Path(self.database_name).exists()

    def prepare(self, query: str) -> "PreparedStatement":
        """Compile a query against this connection."""
        from .statement import PreparedStatement

        return PreparedStatement(query, self)

    def _register(self, statement: "PreparedStatement") -> None:
        self._statements.add(statement)

    def _unregister(self, statement: "PreparedStatement") -> None:
        self._statements.discard(statement)

    def __enter__(self) -> "SQLiteClient":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"SQLiteClient({self.database_name!r}, {state})"


def open_store(target: Union[str, Path] = IN_MEMORY) -> SQLiteClient:
    """Create and open a client for a file path or ":memory:"."""
    return SQLiteClient(target).open()
