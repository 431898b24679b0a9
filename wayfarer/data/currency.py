"""Currency utilities: symbols and price formatting for emails, search tips and PDFs."""

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$", "CAD": "CA$", "GBP": "£", "EUR": "€",
    "JPY": "¥", "AUD": "A$", "SGD": "S$", "HKD": "HK$",
    "INR": "₹", "AED": "AED ", "QAR": "QAR ", "TRY": "TRY ",
    "KRW": "₩", "TWD": "NT$", "CHF": "CHF ", "XOF": "CFA ",
}

# Currencies quoted without minor units
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "XOF"}


def format_price(amount: float | str | None, currency: str = "USD") -> str:
    """Format a price with currency symbol, e.g. ``$1,234.50``.

    Non-numeric amounts (a provider returning ``"N/A"``) are passed through.
    """
    try:
        value = float(amount)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return str(amount) if amount is not None else "N/A"

    currency = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    sign = "-" if value < 0 else ""
    if currency in ZERO_DECIMAL_CURRENCIES:
        return f"{sign}{symbol}{round(abs(value)):,}"
    return f"{sign}{symbol}{abs(value):,.2f}"
