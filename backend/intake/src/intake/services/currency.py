"""Currency policy: minimum chargeable amounts and smallest-unit encoding.

Stripe bills in the smallest unit of a currency (cents for USD). Zero-decimal
currencies are billed in whole units. AED is treated as zero-decimal here by
convention of this service, even though Stripe itself bills AED in fils.

Rounding is ROUND_HALF_UP everywhere. from_smallest_unit is exact, so
to -> from round-trips for any amount already representable in the currency
(two decimal places, or whole units for zero-decimal currencies).
"""

from decimal import ROUND_HALF_UP, Decimal

from intake.utils.logging import get_logger

logger = get_logger(__name__)

ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "aed",
        "clp",
        "jpy",
        "krw",
        "mga",
        "pyg",
        "rwf",
        "ugx",
        "vnd",
        "vuv",
        "xaf",
        "xof",
        "xpf",
    }
)

MINIMUM_AMOUNTS: dict[str, Decimal] = {
    "aed": Decimal("2"),
    "usd": Decimal("0.50"),
    "eur": Decimal("0.50"),
    "gbp": Decimal("0.30"),
    "jpy": Decimal("50"),
    "cad": Decimal("0.50"),
    "aud": Decimal("0.50"),
}

DEFAULT_MINIMUM_AMOUNT = Decimal("0.01")

_SUBUNITS = Decimal(100)
_WHOLE = Decimal(1)
_CENT = Decimal("0.01")


def normalize_currency(currency: str | None, default: str) -> str:
    """Lower-case a currency code, falling back to the default.

    Args:
        currency: ISO code in any case, or None
        default: Currency to use when none is given

    Returns:
        Lower-case ISO currency code
    """
    code = (currency or "").strip()
    return (code or default).lower()


def to_decimal(amount: Decimal | int | float | str) -> Decimal:
    """Convert an amount to Decimal without binary float artefacts."""
    if isinstance(amount, Decimal):
        return amount
    # str() first so 0.3 becomes Decimal("0.3"), not 0.299999...
    return Decimal(str(amount))


def is_zero_decimal(currency: str) -> bool:
    return currency.lower() in ZERO_DECIMAL_CURRENCIES


def minimum_amount(currency: str) -> Decimal:
    """Get the minimum chargeable amount for a currency.

    Unlisted currencies fall back to DEFAULT_MINIMUM_AMOUNT.

    Args:
        currency: ISO currency code (any case)

    Returns:
        Minimum amount in display units
    """
    return MINIMUM_AMOUNTS.get(currency.lower(), DEFAULT_MINIMUM_AMOUNT)


def is_below_minimum(amount: Decimal | int | float | str, currency: str) -> bool:
    return to_decimal(amount) < minimum_amount(currency)


def to_smallest_unit(amount: Decimal | int | float | str, currency: str) -> int:
    """Convert a display amount to the provider's smallest currency unit.

    Args:
        amount: Amount in display units (e.g. 20.00 USD)
        currency: ISO currency code (any case)

    Returns:
        Integer amount (2000 for 20 USD, 20 for 20 AED)
    """
    value = to_decimal(amount)
    if is_zero_decimal(currency):
        units = value.quantize(_WHOLE, rounding=ROUND_HALF_UP)
        if units != value:
            logger.warning(
                "Rounded %s %s to %s for zero-decimal currency",
                value,
                currency.upper(),
                units,
            )
        return int(units)
    return int((value * _SUBUNITS).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def from_smallest_unit(units: int, currency: str) -> Decimal:
    """Convert a smallest-unit integer back to display units.

    Args:
        units: Integer amount as billed by the provider
        currency: ISO currency code (any case)

    Returns:
        Decimal display amount (Decimal("20.00") for 2000 USD)
    """
    if is_zero_decimal(currency):
        return Decimal(units)
    return (Decimal(units) / _SUBUNITS).quantize(_CENT, rounding=ROUND_HALF_UP)
