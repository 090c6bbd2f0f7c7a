"""Fixed-precision money arithmetic and rounding policy.

Every function here takes and returns integer minor units (Money). Conversion
to and from display strings only happens at the boundary, through
parse_money and format_money.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any

from splitledger.domain.errors import InvalidAmount, MoneyContractError
from splitledger.domain.models import DEFAULT_CURRENCY, Currency, Money

CURRENCY_SYMBOLS: dict[str, str] = {
    "AUD": "$",
    "NZD": "$",
    "USD": "$",
    "CAD": "$",
    "GBP": "£",
    "EUR": "€",
}

_HUNDRED = Decimal(100)


def ensure_minor_units(value: Any) -> Money:
    """Validate that a value is an integer number of minor units.

    Args:
        value: Candidate amount.

    Returns:
        The value as Money.

    Raises:
        MoneyContractError: If value is not an int (bools and floats included).
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise MoneyContractError(f"Money must be an integer number of minor units, got {type(value).__name__}: {value!r}")
    return Money(value)


def divide(total: Money, n: int) -> list[Money]:
    """Divide an amount into n shares that sum exactly to the total.

    The remainder (total mod n) is handed out one minor unit at a time to the
    first shares, so the result is stable for a given participant order.

    Args:
        total: Amount in cents.
        n: Number of shares.

    Returns:
        List of n shares in cents.

    Raises:
        MoneyContractError: If total is not an integer.
        ValueError: If n is less than 1.
    """
    total = ensure_minor_units(total)
    if n < 1:
        raise ValueError(f"Cannot divide into {n} shares")

    base, remainder = divmod(total, n)
    return [Money(base + 1) for _ in range(remainder)] + [Money(base) for _ in range(n - remainder)]


def to_percentage(pct: Any) -> Decimal:
    """Coerce a user-supplied percentage to Decimal.

    Floats are refused because they already carry binary rounding error.

    Raises:
        MoneyContractError: If pct is a float or bool.
        InvalidAmount: If pct is not a finite number.
    """
    if isinstance(pct, bool) or isinstance(pct, float):
        raise MoneyContractError(f"Percentages must be Decimal, int or str, got {type(pct).__name__}: {pct!r}")
    if isinstance(pct, Decimal):
        value = pct
    else:
        try:
            value = Decimal(str(pct).strip().rstrip("%"))
        except InvalidOperation as e:
            raise InvalidAmount(f"Invalid percentage: {pct!r}") from e
    if not value.is_finite():
        raise InvalidAmount(f"Invalid percentage: {pct!r}")
    return value


def percentage_of(total: Money, pct: Any) -> Money:
    """Calculate a percentage of an amount, rounded half-to-even.

    Args:
        total: Amount in cents.
        pct: Percentage (e.g., Decimal("33.33") for 33.33%).

    Returns:
        Share in cents, rounded to the nearest cent (ties to even).
    """
    total = ensure_minor_units(total)
    raw = Decimal(total) * to_percentage(pct) / _HUNDRED
    return Money(int(raw.quantize(Decimal(1), rounding=ROUND_HALF_EVEN)))


def to_decimal(amount: Money) -> Decimal:
    """Convert cents to a major-unit Decimal (e.g., 1250 -> Decimal("12.50"))."""
    return Decimal(ensure_minor_units(amount)) / _HUNDRED


def parse_money(text: str) -> Money | None:
    """Parse a display string into cents.

    Args:
        text: Amount in major units, optionally with symbol and separators
            (e.g., "12.50", "$1,234.5").

    Returns:
        Amount in cents, or None if invalid, negative or finer than a cent.
    """
    cleaned = text.strip()
    for symbol in set(CURRENCY_SYMBOLS.values()):
        cleaned = cleaned.replace(symbol, "")
    cleaned = cleaned.replace(",", "").replace(" ", "")
    if not cleaned:
        return None

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not value.is_finite() or value < 0:
        return None

    cents = value * _HUNDRED
    if cents != cents.to_integral_value():
        return None

    return Money(int(cents))


def format_money(amount: Money, currency: Currency = DEFAULT_CURRENCY, include_sign: bool = False) -> str:
    """Format cents for display.

    Args:
        amount: Amount in cents.
        currency: Currency code used to pick the symbol.
        include_sign: Whether to prefix positive amounts with "+".

    Returns:
        Formatted string (e.g., "$12.50", "-$3.00", "CHF 4.00" for unknown symbols).
    """
    major = to_decimal(Money(abs(amount)))
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    formatted = f"{symbol}{major:,.2f}" if symbol else f"{currency.upper()} {major:,.2f}"

    if amount < 0:
        return f"-{formatted}"
    if include_sign and amount > 0:
        return f"+{formatted}"
    return formatted
