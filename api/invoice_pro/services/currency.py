# api/invoice_pro/services/currency.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Dict, NamedTuple

from ..errors import ConfigurationError


class CurrencyInfo(NamedTuple):
    name: str
    symbol: str
    decimal_places: int


CURRENCIES: Dict[str, CurrencyInfo] = {
    # Major
    "USD": CurrencyInfo("US Dollar", "$", 2),
    "EUR": CurrencyInfo("Euro", "€", 2),
    "GBP": CurrencyInfo("British Pound", "£", 2),
    "JPY": CurrencyInfo("Japanese Yen", "¥", 0),
    "CHF": CurrencyInfo("Swiss Franc", "CHF", 2),
    "CAD": CurrencyInfo("Canadian Dollar", "C$", 2),
    "AUD": CurrencyInfo("Australian Dollar", "A$", 2),
    "NZD": CurrencyInfo("New Zealand Dollar", "NZ$", 2),
    # Asia
    "CNY": CurrencyInfo("Chinese Yuan", "¥", 2),
    "HKD": CurrencyInfo("Hong Kong Dollar", "HK$", 2),
    "SGD": CurrencyInfo("Singapore Dollar", "S$", 2),
    "TWD": CurrencyInfo("Taiwan Dollar", "NT$", 0),
    "KRW": CurrencyInfo("South Korean Won", "₩", 0),
    "INR": CurrencyInfo("Indian Rupee", "₹", 2),
    "THB": CurrencyInfo("Thai Baht", "฿", 2),
    "MYR": CurrencyInfo("Malaysian Ringgit", "RM", 2),
    "PHP": CurrencyInfo("Philippine Peso", "₱", 2),
    "IDR": CurrencyInfo("Indonesian Rupiah", "Rp", 0),
    "VND": CurrencyInfo("Vietnamese Dong", "₫", 0),
    # Europe
    "SEK": CurrencyInfo("Swedish Krona", "kr", 2),
    "NOK": CurrencyInfo("Norwegian Krone", "kr", 2),
    "DKK": CurrencyInfo("Danish Krone", "kr", 2),
    "PLN": CurrencyInfo("Polish Zloty", "zł", 2),
    "CZK": CurrencyInfo("Czech Koruna", "Kč", 2),
    "HUF": CurrencyInfo("Hungarian Forint", "Ft", 0),
    "RON": CurrencyInfo("Romanian Leu", "lei", 2),
    "BGN": CurrencyInfo("Bulgarian Lev", "лв", 2),
    "HRK": CurrencyInfo("Croatian Kuna", "kn", 2),
    "RUB": CurrencyInfo("Russian Ruble", "₽", 2),
    "UAH": CurrencyInfo("Ukrainian Hryvnia", "₴", 2),
    "TRY": CurrencyInfo("Turkish Lira", "₺", 2),
    # Americas
    "MXN": CurrencyInfo("Mexican Peso", "MX$", 2),
    "BRL": CurrencyInfo("Brazilian Real", "R$", 2),
    "ARS": CurrencyInfo("Argentine Peso", "AR$", 2),
    "CLP": CurrencyInfo("Chilean Peso", "CLP$", 0),
    "COP": CurrencyInfo("Colombian Peso", "COL$", 0),
    "PEN": CurrencyInfo("Peruvian Sol", "S/", 2),
    # Middle East & Africa
    "AED": CurrencyInfo("UAE Dirham", "د.إ", 2),
    "SAR": CurrencyInfo("Saudi Riyal", "﷼", 2),
    "QAR": CurrencyInfo("Qatari Riyal", "QR", 2),
    "KWD": CurrencyInfo("Kuwaiti Dinar", "KD", 3),
    "BHD": CurrencyInfo("Bahraini Dinar", "BD", 3),
    "OMR": CurrencyInfo("Omani Rial", "OMR", 3),
    "ILS": CurrencyInfo("Israeli Shekel", "₪", 2),
    "EGP": CurrencyInfo("Egyptian Pound", "E£", 2),
    "ZAR": CurrencyInfo("South African Rand", "R", 2),
    "NGN": CurrencyInfo("Nigerian Naira", "₦", 2),
    "KES": CurrencyInfo("Kenyan Shilling", "KSh", 2),
    # Crypto
    "BTC": CurrencyInfo("Bitcoin", "₿", 8),
    "ETH": CurrencyInfo("Ethereum", "Ξ", 8),
    "USDT": CurrencyInfo("Tether", "USDT", 2),
    "USDC": CurrencyInfo("USD Coin", "USDC", 2),
}

POPULAR_CURRENCIES = ["USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF", "CNY"]


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    try:
        # str() keeps float literals like 19.005 from picking up binary noise
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def currency_info(currency_code: str) -> CurrencyInfo:
    code = (currency_code or "").strip().upper()
    info = CURRENCIES.get(code)
    if info is None:
        raise ConfigurationError(f"Unsupported currency: {currency_code!r}")
    return info


def round_to_currency_precision(amount, currency_code: str) -> Decimal:
    places = currency_info(currency_code).decimal_places
    value = to_decimal(amount)
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {amount!r}")
    with localcontext() as ctx:
        # quantize needs every integer digit plus the fraction within precision
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def convert_amount(amount, rate, to_currency: str) -> Decimal:
    return round_to_currency_precision(to_decimal(amount) * to_decimal(rate), to_currency)


def format_currency(amount, currency_code: str) -> str:
    info = currency_info(currency_code)
    value = round_to_currency_precision(amount, currency_code)
    sign = "-" if value < 0 else ""
    return f"{sign}{info.symbol}{value.copy_abs():,.{info.decimal_places}f}"
