# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Structured errors for the SQLite statement layer.

Every failure coming out of the database layer carries a human-readable
message and the native SQLite result code, so callers can branch on
``error.code`` instead of matching strings.
"""

import sqlite3
from typing import Dict, Optional, Type

# SQLite primary result codes (https://sqlite.org/rescode.html)
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_NOTICE = 27
SQLITE_WARNING = 28
SQLITE_ROW = 100
SQLITE_DONE = 101

CODE_NAMES: Dict[int, str] = {
    value: name
    for name, value in globals().items()
    if name.startswith("SQLITE_") and isinstance(value, int)
}

# Codes that mean the connection itself is unusable
FATAL_CODES = frozenset({SQLITE_CANTOPEN, SQLITE_NOTADB, SQLITE_CORRUPT, SQLITE_PERM, SQLITE_NOMEM})

# Used when the interpreter does not expose sqlite_errorcode on the exception
_CLASS_CODES = (
    (sqlite3.IntegrityError, SQLITE_CONSTRAINT),
    (sqlite3.DataError, SQLITE_TOOBIG),
    (sqlite3.ProgrammingError, SQLITE_MISUSE),
    (sqlite3.InterfaceError, SQLITE_MISUSE),
    (sqlite3.NotSupportedError, SQLITE_ERROR),
    (sqlite3.OperationalError, SQLITE_ERROR),
    (sqlite3.DatabaseError, SQLITE_ERROR),
)


def code_name(code: int) -> str:
    """Return the symbolic name of a (possibly extended) SQLite result code."""
    if code in CODE_NAMES:
        return CODE_NAMES[code]
    primary = code & 0xFF
    if primary in CODE_NAMES:
        return f"{CODE_NAMES[primary]} (extended {code})"
    return f"code {code}"


class StoreError(Exception):
    """Base error for the database layer: message plus native result code."""

    def __init__(self, message: str, code: int = SQLITE_ERROR):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def primary_code(self) -> int:
        return self.code & 0xFF

    @property
    def code_name(self) -> str:
        return code_name(self.code)

    @property
    def is_fatal(self) -> bool:
        """True when the connection cannot be used any further."""
        return self.primary_code in FATAL_CODES

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class OpenError(StoreError):
    """The store could not be opened. Always fatal."""

    @property
    def is_fatal(self) -> bool:
        return True


class CompileError(StoreError):
    """A query failed to compile."""


class BindError(StoreError):
    """A value could not be bound to a statement parameter."""


class UnsupportedBindTypeError(BindError):
    """A bind value is not an integer, float or text value."""

    def __init__(self, value: object, index: int):
        super().__init__(
            f"Unsupported bind type {type(value).__name__} for parameter {index}: "
            f"only integer, float and text values can be bound",
            code=SQLITE_OK,
        )
        self.value = value
        self.index = index


class ExecuteError(StoreError):
    """Executing (stepping) a statement failed."""


class SchemaError(StoreError):
    """Creating the tracking table failed."""


class StatementDestroyedError(RuntimeError):
    """A prepared statement was used after destroy()."""


def native_code(exc: sqlite3.Error) -> int:
    """Extract the SQLite result code from a sqlite3 exception."""
    code = getattr(exc, "sqlite_errorcode", None)
    if isinstance(code, int):
        return code
    for exc_type, fallback in _CLASS_CODES:
        if isinstance(exc, exc_type):
            return fallback
    return SQLITE_ERROR


def from_sqlite_error(
    exc: sqlite3.Error,
    error_cls: Type[StoreError] = StoreError,
    message: Optional[str] = None,
) -> StoreError:
    """
    Translate a sqlite3 exception into a structured StoreError.

    Args:
        exc: Exception raised by the sqlite3 module
        error_cls: StoreError subclass to build
        message: Optional message overriding the driver's text

    Returns:
        StoreError instance (not raised)
    """
    code = native_code(exc)
    text = message or str(exc) or getattr(exc, "sqlite_errorname", None) or code_name(code)
    return error_cls(text, code)
