# backend/navsync/services/nav/parsing.py
"""
Text helpers for scraped NAV labels.

A fund page shows the NAV as a short label such as "NT$123.456" or
"100.50 人民幣". Two things are read from it:
- the numeric value (every character except digits and "." is dropped)
- the currency (first matching marker in CURRENCY_MARKERS)
"""

import re

# Ordered: the first currency whose marker appears in the label wins.
# Each entry lists the Latin abbreviation(s) and the localized tokens.
CURRENCY_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("USD", ("usd", "美金", "美元")),
    ("CNY", ("rmb", "cny", "人民幣")),
    ("JPY", ("jpy", "日圓", "日幣")),
    ("EUR", ("eur", "歐元")),
    ("ZAR", ("zar", "南非幣")),
    ("AUD", ("aud", "澳幣")),
)

_NON_NUMERIC = re.compile(r"[^\d.]")


def infer_currency(label: str, default: str) -> str:
    """
    Infer the currency of a NAV label.

    Matching is a case-insensitive substring test against CURRENCY_MARKERS.

    Args:
        label: Raw NAV label text
        default: Home currency returned when no marker matches

    Returns:
        ISO 4217 currency code
    """
    text = label.lower()
    for code, markers in CURRENCY_MARKERS:
        if any(marker in text for marker in markers):
            return code
    return default


def extract_nav_digits(label: str) -> str:
    """
    Strip everything but digits and decimal points.

    Returns an empty string when the label has no numeric content; the
    caller decides whether the remainder is a valid number.
    """
    return _NON_NUMERIC.sub("", label)
