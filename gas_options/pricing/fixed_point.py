"""Fixed-point exponential and logarithm.

Every value is a plain Python int scaled by ``PRECISION`` (1e18 = 1.0).
Division is Python's ``//`` (floor toward -inf) throughout, so results are
identical on every interpreter and platform.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from math import isqrt

from ..errors import DomainError

PRECISION = 10**18
GWEI = 10**9
ETHER = 10**18

# ln(2) and the exp domain, both in fixed point
LN2 = 693_147_180_559_945_309
EXP_LOWER_BOUND = -90 * PRECISION
EXP_UPPER_BOUND = 90 * PRECISION

_MAX_SERIES_TERMS = 40


def exp(x: int) -> int:
    """
    Fixed-point natural exponential.

    The argument is reduced to ``x = k * ln2 + r`` with ``|r| <= ln2 / 2``,
    ``e^r`` is summed as a Taylor series and the result is shifted by ``k``.

    Parameters
    ----------
    x : int
        Exponent in fixed point, strictly inside (-90, 90) units

    Returns
    -------
    int
        ``e^x`` in fixed point

    Raises
    ------
    DomainError
        If ``x`` is outside the supported domain (EXP_OUT_OF_BOUNDS)
    """
    if x <= EXP_LOWER_BOUND or x >= EXP_UPPER_BOUND:
        raise DomainError("EXP_OUT_OF_BOUNDS")
    if x == 0:
        return PRECISION

    k = (x + LN2 // 2) // LN2
    r = x - k * LN2

    term = PRECISION
    total = PRECISION
    for i in range(1, _MAX_SERIES_TERMS):
        term = term * r // (i * PRECISION)
        if term == 0:
            break
        total += term

    if k >= 0:
        return total << k
    return total >> -k


def ln(x: int) -> int:
    """
    Fixed-point natural logarithm of a plain integer.

    The input is scaled to fixed point and halved until it lies in [1, 2);
    the remainder is evaluated with the series
    ``ln(m) = 2 * (y + y^3/3 + y^5/5 + ...)`` where ``y = (m - 1) / (m + 1)``.

    Parameters
    ----------
    x : int
        Unscaled input (e.g. a block count or a price in wei), ``>= 1``

    Returns
    -------
    int
        ``ln(x)`` in fixed point

    Raises
    ------
    DomainError
        If ``x`` is less than 1
    """
    if x < 1:
        raise DomainError("must be >= 1")

    scaled = x * PRECISION
    halvings = 0
    while scaled >= 2 * PRECISION:
        scaled >>= 1
        halvings += 1

    y = (scaled - PRECISION) * PRECISION // (scaled + PRECISION)
    y_squared = y * y // PRECISION

    power = y
    series = 0
    for i in range(1, 2 * _MAX_SERIES_TERMS, 2):
        term = power // i
        if term == 0:
            break
        series += term
        power = power * y_squared // PRECISION

    return halvings * LN2 + 2 * series


def mul(a: int, b: int) -> int:
    """Fixed-point product."""
    return a * b // PRECISION


def div(a: int, b: int) -> int:
    """Fixed-point quotient."""
    if b == 0:
        raise DomainError("division by zero")
    return a * PRECISION // b


def sqrt(x: int) -> int:
    """Fixed-point square root of a non-negative fixed-point value."""
    if x < 0:
        raise DomainError("sqrt of negative value")
    return isqrt(x * PRECISION)


def pow_int(base: int, exponent: int) -> int:
    """
    Raise an unscaled integer ``base`` to a fixed-point ``exponent``.

    Computed as ``exp(exponent * ln(base))``; ``base ** 0`` is one and
    ``0 ** exponent`` is zero for positive exponents.
    """
    if exponent == 0:
        return PRECISION
    if base == 0:
        return 0
    return exp(exponent * ln(base) // PRECISION)


def parse_units(value, decimals: int) -> int:
    """
    Convert a human-readable decimal amount to integer units.

    ``parse_units("0.0079", 18)`` is ``7_900_000_000_000_000`` and
    ``parse_units("22", 9)`` is 22 gwei. The conversion is exact; inputs with
    more fractional digits than ``decimals`` are rejected.
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise DomainError(f"not a decimal amount: {value!r}") from exc
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise DomainError(f"{value!r} has more than {decimals} decimals")
    return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render integer units as a decimal string (inverse of ``parse_units``)."""
    return f"{Decimal(value).scaleb(-decimals).normalize():f}"
