"""Value Object Money - an amount bound to its currency."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.domain.errors import InvalidMoneyError, MixedCurrencyError

MINOR_UNIT = Decimal("0.01")


def quantize(amount: Decimal) -> Decimal:
    """Round to the minor currency unit."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary amount.

    Attributes:
        amount: Decimal amount, kept at full precision until quantized.
        currency_code: ISO 4217 code (USD, EUR, ...).
    """

    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

        if len(self.currency_code) != 3:
            raise InvalidMoneyError(f"currency_code must have 3 characters: {self.currency_code}")
        object.__setattr__(self, "currency_code", self.currency_code.upper())

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other)}")
        if self.currency_code != other.currency_code:
            raise MixedCurrencyError({self.currency_code, other.currency_code})

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency_code=self.currency_code)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency_code}"

    @classmethod
    def zero(cls, currency_code: str = "USD") -> "Money":
        return cls(amount=Decimal("0"), currency_code=currency_code)

    @classmethod
    def sum(cls, items: "list[Money]", currency_code: str) -> "Money":
        """Sum amounts that must all share ``currency_code``."""
        total = cls.zero(currency_code)
        for item in items:
            total = total + item
        return total
