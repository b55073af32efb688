# src/govdrop/dec.py
from __future__ import annotations

"""Fixed-scale decimal helpers.

Every monetary quantity in govdrop is a `decimal.Decimal` held at 18
fractional digits, the same scale the source chain uses for its `Dec` type.
Each multiplication/division rounds back to that scale (banker's rounding),
so results are reproducible bit-for-bit across runs and machines.
"""

from decimal import (
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    localcontext,
)
from typing import Any

PRECISION: int = 18

_QUANTUM = Decimal(1).scaleb(-PRECISION)

# Wide enough for 256-bit integer parts plus the fractional scale.
_CTX = Context(prec=120, rounding=ROUND_HALF_EVEN, traps=[InvalidOperation, DivisionByZero])

ZERO = Decimal(0).quantize(_QUANTUM)
ONE = Decimal(1).quantize(_QUANTUM)


def _scale(d: Decimal) -> Decimal:
    with localcontext(_CTX):
        return d.quantize(_QUANTUM, rounding=ROUND_HALF_EVEN)


def dec(v: Any) -> Decimal:
    """Coerce int/str/Decimal into a scaled Decimal.

    Floats are accepted only when they round-trip through str unchanged,
    bools and non-finite values are rejected.
    """
    if isinstance(v, bool):
        raise ValueError("bool is not a valid decimal")
    if isinstance(v, Decimal):
        d = v
    elif isinstance(v, int):
        d = Decimal(v)
    elif isinstance(v, float):
        d = Decimal(repr(v))
    elif isinstance(v, str):
        s = v.strip()
        if not s:
            raise ValueError("empty decimal string")
        try:
            d = Decimal(s)
        except InvalidOperation as e:
            raise ValueError(f"invalid decimal: {v!r}") from e
    else:
        raise ValueError(f"unsupported decimal type: {type(v).__name__}")

    if not d.is_finite():
        raise ValueError(f"decimal must be finite; got: {v!r}")
    return _scale(d)


def add(*xs: Decimal) -> Decimal:
    total = ZERO
    with localcontext(_CTX):
        for x in xs:
            total = total + x
    return _scale(total)


def sub(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(_CTX):
        return _scale(a - b)


def mul(a: Decimal, b: Decimal, *more: Decimal) -> Decimal:
    """Multiply left to right, rounding to PRECISION after every step."""
    with localcontext(_CTX):
        out = _scale(a * b)
        for m in more:
            out = _scale(out * m)
    return out


def quo(a: Decimal, b: Decimal) -> Decimal:
    """Divide and round to PRECISION. Raises ZeroDivisionError when b == 0."""
    if b == 0:
        raise ZeroDivisionError(f"decimal division by zero ({a} / {b})")
    with localcontext(_CTX):
        return _scale(a / b)


def round_int(d: Decimal) -> int:
    with localcontext(_CTX):
        return int(d.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def truncate_int(d: Decimal) -> int:
    with localcontext(_CTX):
        return int(d.quantize(Decimal(1), rounding=ROUND_DOWN))


def to_str(d: Decimal) -> str:
    """Render a scaled decimal the way the source chain does: 18 digits, no exponent."""
    return format(_scale(d), "f")
