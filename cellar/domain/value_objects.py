"""Domain value objects for type-safe business concepts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from cellar.domain.exceptions import InvalidQuantityError, InvalidTankLabelError

# Digits the quantity columns store; anything finer or larger is rejected
QUANTITY_SCALE = 4
QUANTITY_MAX_DIGITS = 12

_TANK_LABEL_PATTERN: re.Pattern[str] = re.compile(r"^[A-Za-z0-9_-]{1,100}$")


class TankStatus(str, Enum):
    """Explicit soft-delete tag for a tank."""

    ACTIVE = "active"
    DELETED = "deleted"


class Milestone(str, Enum):
    """Batch-level dates stamped by specific transaction types."""

    YEAST = "yeast"
    STABILIZER = "stabilizer"

    @property
    def batch_field(self) -> str:
        """Name of the Batch attribute this milestone stamps."""
        return f"{self.value}_added_at"


class MilestonePolicy(str, Enum):
    """Whether a milestone keeps its first date or follows the latest one."""

    FIRST_OCCURRENCE = "first"
    ALWAYS_LATEST = "latest"


@dataclass(frozen=True)
class TankLabel:
    """
    Immutable value object for a tank label.

    Labels appear in URLs, so only letters, digits, hyphens and
    underscores are allowed.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _TANK_LABEL_PATTERN.match(self.value):
            raise InvalidTankLabelError(label=str(self.value))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Quantity:
    """
    Immutable non-negative fixed-precision amount.

    Values are kept exactly as supplied; a value with more fractional
    digits than the store keeps is rejected rather than rounded.
    """

    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise InvalidQuantityError(self.amount, "must be a decimal")
        if not self.amount.is_finite():
            raise InvalidQuantityError(self.amount, "must be finite")
        if self.amount < 0:
            raise InvalidQuantityError(self.amount, "cannot be negative")
        exponent = self.amount.as_tuple().exponent
        if isinstance(exponent, int) and exponent < -QUANTITY_SCALE:
            raise InvalidQuantityError(
                self.amount, f"more than {QUANTITY_SCALE} decimal places"
            )
        integer_digits = QUANTITY_MAX_DIGITS - QUANTITY_SCALE
        if self.amount and self.amount.adjusted() >= integer_digits:
            raise InvalidQuantityError(
                self.amount, f"more than {integer_digits} integer digits"
            )

    @classmethod
    def parse(cls, value: Decimal | int | float | str) -> Quantity:
        """Build a Quantity from user input without binary float artefacts."""
        if isinstance(value, bool):
            raise InvalidQuantityError(value, "must be a number")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation:
            raise InvalidQuantityError(value, "must be a number") from None
        return cls(amount)

    def signed(self, multiplier: int) -> Decimal:
        """Return the tank adjustment this amount causes under a type's sign."""
        return self.amount * multiplier

    def __str__(self) -> str:
        return str(self.amount)
