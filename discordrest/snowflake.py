"""Snowflake identifiers: 64-bit unsigned ids carried as decimal strings."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import total_ordering
from typing import Any, Union

from pydantic_core import core_schema

from discordrest.errors import InvalidIdentifierError

MAX_SNOWFLAKE = 2**64 - 1

# Milliseconds since the Unix epoch at 2015-01-01T00:00:00Z.
DISCORD_EPOCH_MS = 1420070400000


@total_ordering
class Snowflake:
    """Immutable Discord identifier.

    Compares by numeric value, so ``Snowflake("0042") == Snowflake(42)``.
    ``str()`` always gives the canonical decimal form used in paths and JSON.
    """

    __slots__ = ("_value",)

    def __init__(self, value: SnowflakeLike) -> None:
        object.__setattr__(self, "_value", _coerce(value))

    @classmethod
    def parse(cls, value: SnowflakeLike) -> Snowflake:
        if isinstance(value, Snowflake):
            return value
        return cls(value)

    @staticmethod
    def format(value: SnowflakeLike) -> str:
        return str(Snowflake.parse(value))

    @property
    def value(self) -> int:
        return self._value

    @property
    def is_empty(self) -> bool:
        return self._value == 0

    @property
    def created_at(self) -> datetime:
        """Creation time encoded in the upper 42 bits."""
        ms = (self._value >> 22) + DISCORD_EPOCH_MS
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Snowflake is immutable")

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"Snowflake({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return self._value == other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return self._value < other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value < other
        return NotImplemented

    def __reduce__(self):
        return (Snowflake, (str(self),))

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            _validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )


SnowflakeLike = Union[Snowflake, int, str]


def _coerce(value: Any) -> int:
    if isinstance(value, Snowflake):
        return value.value
    if isinstance(value, bool):
        raise InvalidIdentifierError(f"invalid snowflake {value!r}: expected digits, got bool")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        # str.isdigit() accepts non-ASCII digits, so check the ASCII range explicitly.
        if not value or not all("0" <= ch <= "9" for ch in value):
            raise InvalidIdentifierError(f"invalid snowflake {value!r}: expected decimal digits")
        number = int(value)
    else:
        raise InvalidIdentifierError(
            f"invalid snowflake {value!r}: unsupported type {type(value).__name__}"
        )
    if number < 0 or number > MAX_SNOWFLAKE:
        raise InvalidIdentifierError(f"invalid snowflake {value!r}: outside the 64-bit unsigned range")
    return number


def _validate(value: Any) -> Snowflake:
    # pydantic only converts ValueError/AssertionError into its own ValidationError.
    try:
        return Snowflake.parse(value)
    except InvalidIdentifierError as exc:
        raise ValueError(exc.message) from exc
