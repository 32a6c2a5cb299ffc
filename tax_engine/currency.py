"""
Currency formatting for tax results.

Author: Your Name
Date: 2024
"""

DEFAULT_CURRENCY_SYMBOL = "$"


def format_currency(amount: float, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """
    Render an amount with two decimals, prefixed by the currency symbol.

    Strictly negative amounts are shown in parentheses without a minus sign.

    Examples:
        >>> format_currency(1234.5, "$")
        '$1234.50'
        >>> format_currency(-1234.5, "$")
        '$(1234.50)'
        >>> format_currency(0, "$")
        '$0.00'
    """
    if amount < 0:
        return f"{symbol}({abs(amount):.2f})"
    if amount == 0:
        # -0.0 is not negative but would still print a sign
        amount = abs(amount)
    return f"{symbol}{amount:.2f}"
