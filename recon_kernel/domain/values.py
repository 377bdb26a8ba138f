"""
Values -- Monetary value helpers.

Responsibility:
    Boundary coercion for amounts and currency codes.  Every monetary value
    entering the kernel passes through ``to_amount`` so that floats never
    reach a ledger computation, and every currency code through
    ``normalize_currency``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - TypeError when an amount is a float (or bool).
    - ValueError for non-finite amounts, unparsable strings, and malformed
      currency codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


def to_amount(value: Decimal | int | str) -> Decimal:
    """
    Coerce an amount to Decimal without ever passing through float.

    Raises:
        TypeError: If value is a float, a bool, or another unsupported type.
        ValueError: If value is not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Amounts must be Decimal, int or str, not {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def normalize_currency(code: str) -> str:
    """
    Uppercase and validate a three-letter ISO 4217 style code.

    Raises:
        ValueError: If code is not three ASCII letters.
    """
    normalized = code.strip().upper() if isinstance(code, str) else ""
    if len(normalized) != 3 or not normalized.isascii() or not normalized.isalpha():
        raise ValueError(f"Invalid currency code: {code!r}")
    return normalized


def enum_value(value) -> str:
    """Plain string for a str-Enum member or an already-raw column value."""
    return getattr(value, "value", value)


@dataclass(frozen=True, slots=True)
class Money:
    """
    Amount paired with its currency.

    Contract:
        amount is a finite Decimal; currency is a normalized three-letter code.

    Guarantees:
        - Immutable and hashable.
        - Arithmetic refuses to mix currencies.
    """

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_amount(self.amount))
        object.__setattr__(self, "currency", normalize_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | int | str, currency: str) -> Money:
        return cls(amount=to_amount(amount), currency=currency)

    def abs(self) -> Money:
        return Money(abs(self.amount), self.currency)

    def __add__(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def _check_currency(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
