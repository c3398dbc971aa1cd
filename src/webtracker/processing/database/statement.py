# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Reusable prepared statements over a SQLiteClient.

A PreparedStatement is compiled once and then bound and executed many
times. Compilation happens up front so syntax errors surface from the
constructor; later executions go through one dedicated cursor and the
connection's statement cache, so the query is never recompiled per row.

Lifecycle:
    COMPILED -> BOUND -> EXECUTED -> (reset) COMPILED ... -> DESTROYED
"""

import logging
import re
import sqlite3
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import (
    SQLITE_ERROR,
    SQLITE_MISUSE,
    SQLITE_RANGE,
    SQLITE_ROW,
    BindError,
    CompileError,
    ExecuteError,
    StatementDestroyedError,
    from_sqlite_error,
)
from .sqlite_client import SQLiteClient
from .values import Row, Value

logger = logging.getLogger(__name__)

# Literals, quoted identifiers and comments are matched so that
# placeholder-like text inside them is skipped.
_TOKEN_RE = re.compile(
    r"""
      '(?:[^']|'')*'
    | "(?:[^"]|"")*"
    | `(?:[^`]|``)*`
    | \[[^\]]*\]
    | --[^\n]*
    | /\*.*?(?:\*/|\Z)
    | \?(?P<number>\d+)?
    | (?P<name>[:@$][A-Za-z0-9_]+)
    """,
    re.VERBOSE | re.DOTALL,
)

_NAME_PREFIXES = (":", "@", "$")
_EXPLAIN_RE = re.compile(r"^\s*explain\b", re.IGNORECASE)

RowCallback = Callable[[List[str], List[Any]], None]


class StatementState(Enum):
    COMPILED = "compiled"
    BOUND = "bound"
    EXECUTED = "executed"
    DESTROYED = "destroyed"


def parse_parameters(query: str) -> Tuple[int, Dict[int, str], bool]:
    """
    Find the bind parameters of a query the way SQLite numbers them.

    Args:
        query: SQL text

    Returns:
        (parameter count, {index: name} for named parameters,
         whether anonymous ``?``/``?NNN`` parameters are used)
    """
    count = 0
    names: Dict[int, str] = {}
    indexes: Dict[str, int] = {}
    anonymous = False

    for match in _TOKEN_RE.finditer(query):
        name = match.group("name")
        if name:
            if name not in indexes:
                count += 1
                indexes[name] = count
                names[count] = name
        elif match.group(0).startswith("?"):
            anonymous = True
            number = match.group("number")
            if number:
                count = max(count, int(number))
            else:
                count += 1

    return count, names, anonymous


class PreparedStatement:
    """
    One compiled query with typed parameter binding and row decoding.

    Bindings survive execution; call reset_bindings() to clear them.
    Using a statement after destroy() raises StatementDestroyedError.
    """

    def __init__(self, query: str, client: SQLiteClient):
        """
        Compile a query.

        Args:
            query: Single SQL statement, optionally with placeholders
            client: Open SQLiteClient to compile against

        Raises:
            CompileError: On syntax errors, unknown tables, existing tables
                for CREATE TABLE, or mixed placeholder styles
        """
        self.query = query
        self._client = client
        self._connection = client.connection
        self._bindings: Dict[int, Value] = {}
        self._columns: Optional[List[str]] = None

        self.parameter_count, self._names, anonymous = parse_parameters(query)
        if anonymous and self._names:
            raise CompileError(
                "Mixing anonymous (?) and named parameters is not supported", SQLITE_ERROR
            )

        self._compile()
        self._cursor = self._connection.cursor()
        self._state = StatementState.COMPILED
        client._register(self)

    def _compile(self) -> None:
        """
        Have SQLite compile the query without running it.

        Also records whether the compiled program emits result rows.
        An EXPLAIN query is already side-effect free and is compiled as is.
        """
        already_explain = bool(_EXPLAIN_RE.match(self.query))
        text = self.query if already_explain else f"EXPLAIN {self.query}"
        try:
            cursor = self._connection.execute(text, self._parameters())
            program = cursor.fetchall()
            cursor.close()
        except sqlite3.Error as e:
            raise from_sqlite_error(e, CompileError) from e

        if already_explain:
            self._returns_rows = True
        else:
            # Column 1 of EXPLAIN output is the opcode name
            self._returns_rows = any(op[1] == "ResultRow" for op in program)

    @property
    def returns_rows(self) -> bool:
        """True if executing the statement can produce result rows."""
        return self._returns_rows

    @property
    def state(self) -> StatementState:
        return self._state

    @property
    def destroyed(self) -> bool:
        return self._state is StatementState.DESTROYED

    def _check_alive(self) -> None:
        if self._state is StatementState.DESTROYED:
            raise StatementDestroyedError(f"Statement used after destroy(): {self.query!r}")

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def parameter_index(self, name: str) -> int:
        """
        Index of a named parameter, 0 if there is no such parameter.

        The name may be given with or without its prefix character.
        """
        self._check_alive()
        candidates = [name] if name.startswith(_NAME_PREFIXES) else [p + name for p in _NAME_PREFIXES]
        for index, param in self._names.items():
            if param in candidates:
                return index
        return 0

    def parameter_name(self, index: int) -> Optional[str]:
        """Name (with prefix) of the parameter at a 1-based index, or None."""
        self._check_alive()
        return self._names.get(index)

    def bind(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> None:
        """
        Bind values positionally (sequence) or by parameter name (mapping).

        Positional values fill slots left to right starting at 1.

        Raises:
            UnsupportedBindTypeError: If any value is not int, float or str;
                nothing from this call is bound
            BindError: Too many values, or an unknown parameter name
        """
        self._check_alive()
        if isinstance(values, Mapping):
            indexed = {}
            for name, value in values.items():
                index = self.parameter_index(name)
                if index == 0:
                    raise BindError(f"Unknown parameter name: {name}", SQLITE_RANGE)
                indexed[index] = value
        elif isinstance(values, (str, bytes)):
            raise TypeError("bind() expects a sequence or mapping of values, not a string")
        else:
            values = list(values)
            if len(values) > self.parameter_count:
                raise BindError(
                    f"column index out of range: {len(values)} values for "
                    f"{self.parameter_count} parameters",
                    SQLITE_RANGE,
                )
            indexed = dict(enumerate(values, start=1))
        self.bind_index(indexed)

    def bind_index(self, values: Mapping[int, Any]) -> None:
        """Bind values by explicit 1-based parameter index."""
        self._check_alive()
        if self._state is StatementState.EXECUTED:
            raise BindError("Cannot bind while rows are being fetched; call reset() first", SQLITE_MISUSE)

        staged: Dict[int, Value] = {}
        for index, value in values.items():
            if not 1 <= index <= self.parameter_count:
                raise BindError(f"column index out of range: {index}", SQLITE_RANGE)
            staged[index] = Value.for_bind(value, index)

        self._bindings.update(staged)
        if staged:
            self._state = StatementState.BOUND

    def reset_bindings(self) -> None:
        """Clear all bound values. Unbound parameters are NULL."""
        self._check_alive()
        self._bindings.clear()
        if self._state is StatementState.BOUND:
            self._state = StatementState.COMPILED

    def _parameters(self) -> Union[Tuple[Any, ...], Dict[str, Any]]:
        values = [
            self._bindings[index].value if index in self._bindings else None
            for index in range(1, self.parameter_count + 1)
        ]
        if self._names:
            return {name[1:]: values[index - 1] for index, name in self._names.items()}
        return tuple(values)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to the compiled state, abandoning any pending rows. Bindings are kept."""
        self._check_alive()
        if self._state is StatementState.EXECUTED:
            self._cursor.close()
            self._cursor = self._connection.cursor()
        self._state = StatementState.COMPILED

    def _run(self) -> None:
        self.reset()
        try:
            self._cursor.execute(self.query, self._parameters())
        except sqlite3.Error as e:
            self.reset()
            raise from_sqlite_error(e, ExecuteError) from e
        self._state = StatementState.EXECUTED
        if self._cursor.description is not None:
            self._columns = [column[0] for column in self._cursor.description]

    def execute_for_effect(self) -> int:
        """
        Run a statement that returns no rows (INSERT, UPDATE, DDL...).

        Returns:
            Number of rows changed

        Raises:
            ExecuteError: On failure, or SQLITE_ROW if the statement yields rows.
                The statement is reset either way.
        """
        self._run()
        try:
            row = self._cursor.fetchone() if self._cursor.description is not None else None
            changes = self._cursor.rowcount
        except sqlite3.Error as e:
            self.reset()
            raise from_sqlite_error(e, ExecuteError) from e
        self.reset()

        if row is not None:
            raise ExecuteError(
                "Statement returned rows; use execute_for_all_rows() or execute_for_next_row()",
                SQLITE_ROW,
            )
        return max(changes, 0)

    def execute_for_all_rows(self) -> List[Row]:
        """
        Run the statement and decode every result row.

        Meant for small result sets; use execute_for_next_row() otherwise.
        """
        self._run()
        try:
            raw_rows = self._cursor.fetchall()
        except sqlite3.Error as e:
            self.reset()
            raise from_sqlite_error(e, ExecuteError) from e
        self.reset()
        return [self._decode(raw) for raw in raw_rows]

    def execute_for_next_row(self) -> Optional[Row]:
        """
        Step once and decode one row.

        Returns:
            The next row, or None when there are no more rows (the
            statement is reset in that case)
        """
        if self._state is not StatementState.EXECUTED:
            self._run()
        try:
            raw = self._cursor.fetchone()
        except sqlite3.Error as e:
            self.reset()
            raise from_sqlite_error(e, ExecuteError) from e

        if raw is None:
            self.reset()
            return None
        return self._decode(raw)

    def execute(self, callback: Optional[RowCallback] = None) -> None:
        """
        Run the query text directly, without bindings.

        Args:
            callback: Called as callback(column_names, values) for every
                result row; ignored for statements that return no rows
        """
        self._check_alive()
        try:
            cursor = self._connection.execute(self.query)
            columns = [column[0] for column in cursor.description or ()]
            for raw in cursor:
                if callback is not None:
                    callback(columns, list(raw))
            cursor.close()
        except sqlite3.Error as e:
            raise from_sqlite_error(e, ExecuteError) from e

    def column_names(self) -> Optional[List[str]]:
        """Result column names for row-returning queries, None otherwise."""
        self._check_alive()
        if not self._returns_rows:
            return None
        if self._columns is None:
            self._columns = self._describe()
        return list(self._columns)

    def _describe(self) -> List[str]:
        """Run the query inside a savepoint that is rolled back, keeping only the column names."""
        try:
            self._connection.execute("SAVEPOINT describe_columns")
            try:
                cursor = self._connection.execute(self.query, self._parameters())
                columns = [column[0] for column in cursor.description or ()]
                cursor.close()
            finally:
                self._connection.execute("ROLLBACK TO describe_columns")
                self._connection.execute("RELEASE describe_columns")
        except sqlite3.Error as e:
            raise from_sqlite_error(e, ExecuteError) from e
        return columns

    @staticmethod
    def _decode(raw: Sequence[Any]) -> Row:
        return [Value.decode(column) for column in raw]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Finalize the statement. Destroying twice is a no-op."""
        if self._state is StatementState.DESTROYED:
            return
        self._cursor.close()
        self._bindings.clear()
        self._client._unregister(self)
        self._state = StatementState.DESTROYED
        logger.debug(f"Destroyed statement: {self.query}")

    def __enter__(self) -> "PreparedStatement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()

    def __repr__(self) -> str:
        return f"PreparedStatement({self.query!r}, {self._state.value})"
