# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Typed values exchanged with the statement layer.

Bound parameters and decoded columns are represented as a closed set of
storage classes. Only INTEGER, FLOAT and TEXT can be bound or decoded;
BLOB and NULL columns, and text that is not valid UTF-8, come back as
non-decoded markers.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Optional, Union

from .errors import UnsupportedBindTypeError


class ValueType(IntEnum):
    """SQLite fundamental datatypes, numbered as in the C API."""

    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5


DECODED_TYPES = frozenset({ValueType.INTEGER, ValueType.FLOAT, ValueType.TEXT})


@dataclass(frozen=True)
class Value:
    """One typed value. ``value`` is None for non-decoded columns."""

    type: ValueType
    value: Union[int, float, str, None] = None

    @property
    def decoded(self) -> bool:
        return self.type in DECODED_TYPES

    @classmethod
    def of_int(cls, value: int) -> "Value":
        return cls(ValueType.INTEGER, int(value))

    @classmethod
    def of_float(cls, value: float) -> "Value":
        return cls(ValueType.FLOAT, value)

    @classmethod
    def of_text(cls, value: str) -> "Value":
        return cls(ValueType.TEXT, value)

    @classmethod
    def for_bind(cls, value: Any, index: int) -> "Value":
        """
        Wrap a Python value for binding.

        Args:
            value: Python value (int, bool, float or str)
            index: 1-based parameter slot, used for error reporting

        Returns:
            Value instance

        Raises:
            UnsupportedBindTypeError: For bytes, None and any other type
        """
        if isinstance(value, Value):
            if not value.decoded:
                raise UnsupportedBindTypeError(value, index)
            return value
        # bool is an int subclass and binds as 0/1
        if isinstance(value, int):
            return cls.of_int(value)
        if isinstance(value, float):
            return cls.of_float(value)
        if isinstance(value, str):
            return cls.of_text(value)
        raise UnsupportedBindTypeError(value, index)

    @classmethod
    def decode(cls, raw: Any) -> "Value":
        """Decode a column value by the storage class SQLite returned."""
        if isinstance(raw, int):
            return cls(ValueType.INTEGER, raw)
        if isinstance(raw, float):
            return cls(ValueType.FLOAT, raw)
        if isinstance(raw, str):
            return cls(ValueType.TEXT, raw)
        if raw is None:
            return cls(ValueType.NULL)
        return cls(ValueType.BLOB)


Row = List[Value]


def row_values(row: Row) -> List[Optional[Union[int, float, str]]]:
    """Plain Python values of a decoded row (None for non-decoded columns)."""
    return [column.value for column in row]
