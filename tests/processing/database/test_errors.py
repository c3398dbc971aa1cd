# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the sqlite3 error mapping.
"""

import sqlite3

from webtracker.processing.database.errors import (
    SQLITE_CANTOPEN,
    SQLITE_CONSTRAINT,
    SQLITE_ERROR,
    SQLITE_MISUSE,
    CompileError,
    OpenError,
    StoreError,
    UnsupportedBindTypeError,
    code_name,
    from_sqlite_error,
    native_code,
)


class TestCodeNames:
    def test_primary_code(self):
        assert code_name(SQLITE_CANTOPEN) == "SQLITE_CANTOPEN"

    def test_extended_code_falls_back_to_primary(self):
        # SQLITE_CONSTRAINT_NOTNULL
        assert code_name(1299).startswith("SQLITE_CONSTRAINT")

    def test_unknown_code(self):
        assert code_name(999) == "code 999"


class TestFromSqliteError:
    def test_uses_driver_code_when_available(self):
        exc = sqlite3.OperationalError("unable to open database file")
        exc.sqlite_errorcode = SQLITE_CANTOPEN

        error = from_sqlite_error(exc, OpenError)
        assert isinstance(error, OpenError)
        assert error.code == SQLITE_CANTOPEN
        assert error.message == "unable to open database file"

    def test_falls_back_to_exception_class(self):
        assert native_code(sqlite3.IntegrityError("x")) == SQLITE_CONSTRAINT
        assert native_code(sqlite3.ProgrammingError("x")) == SQLITE_MISUSE
        assert native_code(sqlite3.OperationalError("x")) == SQLITE_ERROR

    def test_empty_message_uses_code_name(self):
        error = from_sqlite_error(sqlite3.IntegrityError(""), CompileError)
        assert error.message.startswith("SQLITE_CONSTRAINT")

    def test_message_override(self):
        error = from_sqlite_error(sqlite3.OperationalError("driver text"), message="custom")
        assert error.message == "custom"


class TestErrorTypes:
    def test_fatal_classification(self):
        assert OpenError("x", SQLITE_ERROR).is_fatal
        assert StoreError("x", SQLITE_CANTOPEN).is_fatal
        assert not StoreError("x", SQLITE_CONSTRAINT).is_fatal

    def test_str_includes_code(self):
        assert str(StoreError("boom", SQLITE_CONSTRAINT)) == "boom (code 19)"

    def test_unsupported_bind_type_names_value(self):
        error = UnsupportedBindTypeError(b"raw", 3)
        assert error.index == 3
        assert "bytes" in error.message
        assert "parameter 3" in error.message
