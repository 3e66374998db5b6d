"""Language resolution and locale-aware formatting.

Formatting rules cover the languages in LANGUAGE_LOCALES only: month
names, date order, and number/currency separators.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from notifier.config.models import LANGUAGE_LOCALES, LocalizationConfig
from notifier.utils.timestamps import ensure_utc

_MONTHS = {
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    "pt": [
        "janeiro", "fevereiro", "março", "abril", "maio", "junho",
        "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
    ],
}

# (thousands separator, decimal separator, space between symbol and amount)
_NUMBER_STYLE = {
    "en": (",", ".", False),
    "pt": (".", ",", True),
}

_CURRENCY_SYMBOLS = {
    "en": {"USD": "$", "BRL": "R$", "EUR": "€", "GBP": "£"},
    "pt": {"USD": "US$", "BRL": "R$", "EUR": "€", "GBP": "£"},
}


def resolve_language(preference: Optional[str], localization: LocalizationConfig) -> str:
    """
    Derive the two-letter language for a recipient.

    Uses the first two letters of the stored preference (lower-cased) when
    that language is supported, otherwise the configured default.

    Example:
        >>> resolve_language("pt-BR", LocalizationConfig())
        'pt'
        >>> resolve_language("fr", LocalizationConfig())
        'en'
    """
    if preference:
        tag = preference.strip()[:2].lower()
        if tag in localization.supported_languages:
            return tag
    return localization.default_language


def locale_for(language: str) -> str:
    """Map a language tag to its locale, e.g. 'pt' -> 'pt-BR'."""
    return LANGUAGE_LOCALES.get(language, LANGUAGE_LOCALES["en"])


def format_date(value: datetime, language: str, with_time: bool = False) -> str:
    """
    Format a date in long form for the given language (UTC).

    Example:
        >>> format_date(datetime(2024, 5, 1, tzinfo=timezone.utc), "en")
        'May 1, 2024'
        >>> format_date(datetime(2024, 5, 1, tzinfo=timezone.utc), "pt")
        '1 de maio de 2024'
    """
    dt = ensure_utc(value)
    months = _MONTHS.get(language, _MONTHS["en"])
    month = months[dt.month - 1]

    if language == "pt":
        text = f"{dt.day} de {month} de {dt.year}"
        if with_time:
            text += f" {dt:%H:%M} UTC"
        return text

    text = f"{month} {dt.day}, {dt.year}"
    if with_time:
        hour = dt.hour % 12 or 12
        suffix = "AM" if dt.hour < 12 else "PM"
        text += f", {hour:02d}:{dt.minute:02d} {suffix} UTC"
    return text


def format_number(value: Union[int, float, Decimal], language: str, decimals: int = 2) -> str:
    """Format a number with the language's separators."""
    thousands, decimal_sep, _ = _NUMBER_STYLE.get(language, _NUMBER_STYLE["en"])
    quantum = Decimal(1).scaleb(-decimals)
    amount = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    formatted = f"{abs(amount):,.{decimals}f}"
    formatted = formatted.replace(",", "\x00").replace(".", decimal_sep).replace("\x00", thousands)
    return f"-{formatted}" if amount < 0 else formatted


def format_currency(amount: Union[int, float, Decimal], currency: str, language: str) -> str:
    """
    Format a monetary amount for the given language.

    Example:
        >>> format_currency(1234.5, "BRL", "pt")
        'R$ 1.234,50'
        >>> format_currency(9.9, "USD", "en")
        '$9.90'
    """
    code = currency.upper()
    _, _, spaced = _NUMBER_STYLE.get(language, _NUMBER_STYLE["en"])
    symbols = _CURRENCY_SYMBOLS.get(language, _CURRENCY_SYMBOLS["en"])
    number = format_number(amount, language)

    symbol = symbols.get(code)
    if symbol is None:
        return f"{code} {number}"
    return f"{symbol} {number}" if spaced else f"{symbol}{number}"
