"""Currency formatting and detection helpers for receipt data."""

from __future__ import annotations

import logging
import re

from babel import localedata
from babel.numbers import UnknownCurrencyError, format_currency as _babel_format
from babel.numbers import validate_currency

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
_DEFAULT_LOCALE = "en_US"

# Currency to locale mapping for formatting
CURRENCY_LOCALE_MAP: dict[str, str] = {
    "USD": "en_US",
    "EUR": "de_DE",
    "GBP": "en_GB",
    "JPY": "ja_JP",
    "CAD": "en_CA",
    "AUD": "en_AU",
    "CHF": "de_CH",
    "CNY": "zh_CN",
    "INR": "en_IN",
    "KRW": "ko_KR",
    "SGD": "en_SG",
    "HKD": "en_HK",
    "MXN": "es_MX",
    "BRL": "pt_BR",
    "RUB": "ru_RU",
    "SEK": "sv_SE",
    "NOK": "nb_NO",
    "DKK": "da_DK",
    "PLN": "pl_PL",
    "CZK": "cs_CZ",
    "HUF": "hu_HU",
    "RON": "ro_RO",
    "BGN": "bg_BG",
    "HRK": "hr_HR",
    "TRY": "tr_TR",
    "ILS": "he_IL",
    "AED": "ar_AE",
    "SAR": "ar_SA",
    "THB": "th_TH",
    "VND": "vi_VN",
    "IDR": "id_ID",
    "MYR": "ms_MY",
    "PHP": "en_PH",
    "TWD": "zh_TW",
    "NZD": "en_NZ",
    "ZAR": "en_ZA",
    "EGP": "ar_EG",
    "NGN": "en_NG",
    "KES": "sw_KE",
    "GHS": "en_GH",
    "MAD": "ar_MA",
    "TND": "ar_TN",
    "JOD": "ar_JO",
    "LBP": "ar_LB",
    "QAR": "ar_QA",
    "KWD": "ar_KW",
    "BHD": "ar_BH",
    "OMR": "ar_OM",
}

# Ordered: first match wins. The generic "ca " pattern belongs to the US
# block (state abbreviation), so Canada must be named explicitly.
_LOCATION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # North America
    (re.compile(r"(usa|united states|america|us\s|u\.s\.|ca\s)"), "USD"),
    (re.compile(r"(canada|canadian)"), "CAD"),
    # Europe
    (re.compile(r"(germany|deutschland|de\s|berlin|munich|hamburg)"), "EUR"),
    (re.compile(r"(france|french|fr\s|paris|lyon|marseille)"), "EUR"),
    (re.compile(r"(italy|italian|it\s|rome|milan|napoli)"), "EUR"),
    (re.compile(r"(spain|spanish|es\s|madrid|barcelona|valencia)"), "EUR"),
    (re.compile(r"(netherlands|holland|nl\s|amsterdam)"), "EUR"),
    (re.compile(r"(uk|united kingdom|britain|gb\s|london|manchester)"), "GBP"),
    (re.compile(r"(switzerland|swiss|ch\s|zurich|geneva)"), "CHF"),
    # Asia
    (re.compile(r"(japan|japanese|jp\s|tokyo|osaka|kyoto)"), "JPY"),
    (re.compile(r"(china|chinese|cn\s|beijing|shanghai|guangzhou)"), "CNY"),
    (re.compile(r"(india|indian|in\s|mumbai|delhi|bangalore)"), "INR"),
    (re.compile(r"(korea|korean|kr\s|seoul|busan)"), "KRW"),
    (re.compile(r"(singapore|sg\s)"), "SGD"),
    (re.compile(r"(hong kong|hk\s)"), "HKD"),
    (re.compile(r"(thailand|thai|th\s|bangkok)"), "THB"),
    (re.compile(r"(vietnam|vietnamese|vn\s|hanoi|ho chi minh)"), "VND"),
    (re.compile(r"(indonesia|indonesian|id\s|jakarta)"), "IDR"),
    (re.compile(r"(malaysia|malaysian|my\s|kuala lumpur)"), "MYR"),
    (re.compile(r"(philippines|filipino|ph\s|manila)"), "PHP"),
    # Oceania
    (re.compile(r"(australia|australian|au\s|sydney|melbourne)"), "AUD"),
    (re.compile(r"(new zealand|nz\s|auckland)"), "NZD"),
    # Middle East & Africa
    (re.compile(r"(uae|emirates|dubai|abu dhabi)"), "AED"),
    (re.compile(r"(saudi|arabia|riyadh|jeddah)"), "SAR"),
    (re.compile(r"(israel|israeli|il\s|tel aviv|jerusalem)"), "ILS"),
    (re.compile(r"(south africa|za\s|johannesburg|cape town)"), "ZAR"),
    (re.compile(r"(egypt|egyptian|eg\s|cairo)"), "EGP"),
    # Latin America
    (re.compile(r"(mexico|mexican|mx\s|mexico city)"), "MXN"),
    (re.compile(r"(brazil|brazilian|br\s|sao paulo|rio)"), "BRL"),
]

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def to_number(value: float | int | str | None) -> float:
    """Coerce a numeric-or-string amount to a float.

    Mirrors a lenient float parse: leading whitespace is skipped and the
    longest numeric prefix is used ("12.50 USD" -> 12.5). Anything without
    a numeric prefix becomes NaN.
    """
    if value is None or isinstance(value, bool):
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value))
    if not match:
        return float("nan")
    return float(match.group(0))


def locale_for(currency_code: str) -> str:
    locale = CURRENCY_LOCALE_MAP.get(currency_code.upper(), _DEFAULT_LOCALE)
    return locale if localedata.exists(locale) else _DEFAULT_LOCALE


def format_currency(
    amount: float | int | str | None, currency_code: str = DEFAULT_CURRENCY
) -> str:
    """Format an amount in the given currency with exactly two decimals.

    Returns "N/A" for non-numeric amounts. Unsupported currency codes are
    formatted as USD instead of raising.
    """
    value = to_number(amount)
    if value != value:  # NaN
        return "N/A"

    code = (currency_code or DEFAULT_CURRENCY).upper()
    try:
        validate_currency(code)
        return _babel_format(value, code, locale=locale_for(code), currency_digits=False)
    except (UnknownCurrencyError, ValueError):
        logger.warning("Currency %s not supported, falling back to USD", currency_code)
        return _babel_format(
            value, DEFAULT_CURRENCY, locale=_DEFAULT_LOCALE, currency_digits=False
        )


def get_currency_symbol(currency_code: str = DEFAULT_CURRENCY) -> str:
    """Return the display symbol for a currency code (e.g. "$", "€")."""
    code = (currency_code or DEFAULT_CURRENCY).upper()
    try:
        validate_currency(code)
        formatted = _babel_format(
            0, code, locale=locale_for(code), format="¤#,##0", currency_digits=False
        )
    except (UnknownCurrencyError, ValueError):
        return "$"
    return re.sub(r"[\d.,'\s]", "", formatted) or "$"


def is_valid_currency_code(code: str) -> bool:
    try:
        validate_currency((code or "").upper())
    except (UnknownCurrencyError, ValueError):
        return False
    return True


def detect_currency_from_location(
    address: str | None = None, language: str | None = None
) -> str:
    """Guess an ISO 4217 code from a store address and/or language hint.

    Tests the ordered pattern list against the lower-cased hints; the first
    matching pattern wins. Defaults to USD.
    """
    if not address and not language:
        return DEFAULT_CURRENCY

    search_text = f"{(address or '').lower()} {(language or '').lower()}"
    for pattern, currency in _LOCATION_PATTERNS:
        if pattern.search(search_text):
            return currency
    return DEFAULT_CURRENCY
