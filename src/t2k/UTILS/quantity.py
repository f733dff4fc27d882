"""
Parsing of Kubernetes resource quantities ("500m", "2", "512Mi", "10Gi", "1e3").
"""
import re
from decimal import Decimal, InvalidOperation

BINARY_SUFFIXES = {
    "Ki": 2 ** 10,
    "Mi": 2 ** 20,
    "Gi": 2 ** 30,
    "Ti": 2 ** 40,
    "Pi": 2 ** 50,
    "Ei": 2 ** 60,
}

DECIMAL_SUFFIXES = {
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "": Decimal(1),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
}

_QUANTITY = re.compile(r'^\s*([+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?)\s*([A-Za-z]*)\s*$')


def parse_quantity(quantity: str) -> Decimal:
    """
    Converts a quantity string into its base unit (cores or bytes).

    :param quantity: The quantity, e.g. "250m" or "1Gi".
    :return: The numeric value. Negative quantities are returned as-is.
    :raises ValueError: If the string is not a valid quantity.
    """
    match = _QUANTITY.match(str(quantity))
    if not match:
        raise ValueError(f"Invalid quantity: {quantity!r}")
    number, suffix = match.groups()
    try:
        value = Decimal(number)
    except InvalidOperation:
        raise ValueError(f"Invalid quantity: {quantity!r}")
    if suffix in BINARY_SUFFIXES:
        return value * BINARY_SUFFIXES[suffix]
    if suffix in DECIMAL_SUFFIXES:
        return value * DECIMAL_SUFFIXES[suffix]
    raise ValueError(f"Unknown quantity suffix {suffix!r} in {quantity!r}")
