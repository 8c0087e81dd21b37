"""
Locale-aware number formatting for KPI values.

Separators and the currency symbol come from the configured LocaleConfig,
so pt-BR renders 1234.5 as "R$ 1.234,50" and en-US as "$1,234.50".
"""

from __future__ import annotations

import math

import pandas as pd

from .config import LocaleConfig, get_config

CURRENCY_SYMBOLS = {
    "BRL": "R$ ",
    "USD": "$",
    "EUR": "€ ",
    "GBP": "£",
}


def _locale(locale: LocaleConfig | None) -> LocaleConfig:
    return locale or get_config().locale


def _localise(text: str, locale: LocaleConfig) -> str:
    """Swap Python's ',' / '.' separators for the locale's."""
    sep = locale.number_format
    return text.replace(",", "\0").replace(".", sep.decimal).replace("\0", sep.thousand)


def format_fixed(value: float, decimals: int = 2, locale: LocaleConfig | None = None) -> str:
    """Grouped number with exactly `decimals` fraction digits."""
    locale = _locale(locale)
    if not math.isfinite(value):
        value = 0.0
    return _localise(f"{value:,.{decimals}f}", locale)


def format_currency(value: float, locale: LocaleConfig | None = None) -> str:
    locale = _locale(locale)
    symbol = CURRENCY_SYMBOLS.get(locale.currency, f"{locale.currency} ")
    body = format_fixed(abs(value), 2, locale)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{body}"


def format_percentage(value: float, decimals: int = 2, locale: LocaleConfig | None = None) -> str:
    return f"{format_fixed(value, decimals, locale)}%"


def format_decimal(value: float, decimals: int = 2, locale: LocaleConfig | None = None) -> str:
    return format_fixed(value, decimals, locale)


def format_number(value: float, locale: LocaleConfig | None = None) -> str:
    """Grouped number with up to three fraction digits, trailing zeros dropped."""
    locale = _locale(locale)
    if not math.isfinite(value):
        value = 0.0
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return _localise(text, locale)


def format_value(value: float, fmt: str, locale: LocaleConfig | None = None) -> str:
    """Format according to a KPI format name; unknown formats fall back to number."""
    if fmt == "currency":
        return format_currency(value, locale)
    if fmt == "percentage":
        return format_percentage(value, locale=locale)
    if fmt == "decimal":
        return format_decimal(value, locale=locale)
    return format_number(value, locale)


def format_date(value, locale: LocaleConfig | None = None) -> str:
    """Render a date-like value with the configured DD/MM/YYYY-style pattern."""
    locale = _locale(locale)
    ts = pd.Timestamp(value)
    pattern = (
        locale.date_format.replace("DD", "%d").replace("MM", "%m").replace("YYYY", "%Y")
    )
    return ts.strftime(pattern)
