import re
from decimal import Decimal

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")

_AMOUNT_RE = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")


def parse_amount(value: str) -> Decimal:
    """
    Parse a user-supplied amount string into an exact two-place Decimal.

    Only plain non-negative decimal notation is accepted. Values with more than
    two fraction digits are rejected instead of rounded so that the stored
    amount always equals what was entered.
    """
    if not isinstance(value, str):
        raise ValueError("Amount must be a string")
    clean = value.strip()
    if not clean:
        raise ValueError("Amount is required")
    if clean.startswith("-"):
        raise ValueError("Amount must not be negative")
    if not _AMOUNT_RE.match(clean):
        raise ValueError("Invalid amount")
    amount = Decimal(clean)
    if amount >= MAX_AMOUNT:
        raise ValueError("Amount is too large")
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValueError("Amount must have at most two decimal places")
    return quantized


def normalize_amount(value: str) -> str:
    return f"{parse_amount(value):.2f}"


def to_cents(value: str) -> int:
    return int(parse_amount(value) * 100)


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{whole}.{frac:02d}"
