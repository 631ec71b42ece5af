def format_currency(amount: float, symbol: str = "S$") -> str:
    """Format a float as currency string, e.g. 'S$1,234.56'."""
    return f"{symbol}{amount:,.2f}"
