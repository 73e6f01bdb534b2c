"""Currencies accepted by Telegram Payments and their decimal exponents.

Telegram expects invoice amounts as integers in the smallest units of
the currency: ``exp`` is the number of digits past the decimal point
(2 for cent-based currencies, 0 for JPY or Telegram Stars).
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import UnsupportedCurrencyError


CURRENCY_EXPONENTS: dict[str, int] = {
    "AED": 2, "AFN": 2, "ALL": 2, "AMD": 2, "ARS": 2, "AUD": 2, "AZN": 2,
    "BAM": 2, "BDT": 2, "BGN": 2, "BND": 2, "BOB": 2, "BRL": 2, "BYN": 2,
    "CAD": 2, "CHF": 2, "CNY": 2, "COP": 2, "CRC": 2, "CZK": 2,
    "DKK": 2, "DOP": 2, "DZD": 2, "EGP": 2, "ETB": 2, "EUR": 2,
    "GBP": 2, "GEL": 2, "GTQ": 2, "HKD": 2, "HNL": 2, "HRK": 2, "HUF": 2,
    "IDR": 2, "ILS": 2, "INR": 2, "JMD": 2, "JPY": 0, "KES": 2, "KGS": 2,
    "KRW": 0, "KZT": 2, "LBP": 2, "LKR": 2, "MAD": 2, "MDL": 2, "MNT": 2,
    "MUR": 2, "MVR": 2, "MXN": 2, "MYR": 2, "MZN": 2, "NGN": 2, "NIO": 2,
    "NOK": 2, "NPR": 2, "NZD": 2, "PAB": 2, "PEN": 2, "PHP": 2, "PKR": 2,
    "PLN": 2, "PYG": 0, "QAR": 2, "RON": 2, "RSD": 2, "RUB": 2, "SAR": 2,
    "SEK": 2, "SGD": 2, "THB": 2, "TJS": 2, "TRY": 2, "TTD": 2, "TWD": 2,
    "TZS": 2, "UAH": 2, "UGX": 0, "USD": 2, "UYU": 2, "UZS": 2, "VND": 0,
    "XTR": 0, "YER": 2, "ZAR": 2,
}


def currency_exponent(code: str) -> int:
    """Return the decimal exponent for ``code``.

    Raises:
        UnsupportedCurrencyError: When the currency is not in the table.
            There is no fallback: a wrong exponent would charge the user
            a wrong amount.
    """
    try:
        return CURRENCY_EXPONENTS[code.upper()]
    except KeyError:
        raise UnsupportedCurrencyError(code) from None


def to_minor_units(total: str, exponent: int) -> int:
    """Convert a decimal string such as ``"4.00"`` to integer minor units.

    Raises:
        InvalidOperation: When ``total`` is not a finite decimal number
            (``"abc"``, ``"NaN"``, ``"Infinity"``).
    """
    scaled = Decimal(total) * (Decimal(10) ** exponent)
    if not scaled.is_finite():
        raise InvalidOperation(f"non-finite amount: {total!r}")
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))
