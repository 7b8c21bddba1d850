"""Conversion of operator prices into token base units."""


def to_base_units(units: str, decimals: int) -> int:
    """Convert a decimal string like ``"1.5"`` into integer base units.

    Digits beyond ``decimals`` are truncated, never rounded:
    ``to_base_units("1.23456", 2) == 123``. An empty or non-numeric
    fractional part counts as zeros. Input is not otherwise validated;
    ``PRICE_UNITS`` is checked once at startup.
    """
    whole, _, frac = str(units).partition(".")
    if not (frac.isascii() and frac.isdigit()):
        frac = ""
    frac_padded = (frac + "0" * decimals)[:decimals]
    digits = f"{whole}{frac_padded}".lstrip("0")
    return int(digits or "0")


def format_units(value: int, decimals: int) -> str:
    """Render base units as a plain decimal string (``1500000, 6 -> "1.5"``)."""
    if decimals == 0:
        return str(value)
    whole, frac = divmod(value, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_str}" if frac_str else str(whole)
