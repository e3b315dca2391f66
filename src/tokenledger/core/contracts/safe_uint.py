"""
Checked unsigned 64-bit arithmetic for ledger quantities.

Token ids, balances and minted supply are u64 values. Python ints never wrap,
so the range is enforced explicitly: arguments outside [0, U64_MAX] are
rejected up front, and additions that would leave the range fail instead of
silently clamping or wrapping.
"""

from __future__ import annotations

from typing import Type

from ..ledger_exceptions import (
    ArithmeticOverflowError,
    InputError,
    InvalidValueError,
)

U64_MAX: int = 2**64 - 1


def require_u64(value: object, name: str = "value") -> int:
    """
    Validate that value is an int in [0, U64_MAX].

    Args:
        value: Candidate value
        name: Argument name used in the error message

    Returns:
        The validated value

    Raises:
        InvalidValueError: If value is not a u64
    """
    # bool is an int subclass but never a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValueError(
            f"{name} must be an unsigned 64-bit integer, got {type(value).__name__}",
            details={"argument": name},
        )
    if value < 0 or value > U64_MAX:
        raise InvalidValueError(
            f"{name} out of u64 range: {value}",
            details={"argument": name, "value": value},
        )
    return value


def u64_add(
    x: int,
    y: int,
    error: Type[InputError] = ArithmeticOverflowError,
) -> int:
    """Checked add; raises `error` when x + y exceeds U64_MAX."""
    result = x + y
    if result > U64_MAX:
        raise error(
            f"u64 overflow ({x} + {y})",
            details={"lhs": x, "rhs": y},
        )
    return result


def u64_sub(x: int, y: int) -> int:
    """Checked subtract; raises ArithmeticOverflowError on underflow."""
    if y > x:
        raise ArithmeticOverflowError(
            f"u64 underflow ({x} - {y})",
            details={"lhs": x, "rhs": y},
        )
    return x - y
