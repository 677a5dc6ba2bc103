def short_id(value) -> str:
    return str(value or "N/A")[:8]


def money(amount, currency="XAF") -> str:
    return f"{float(amount or 0):,.0f} {currency or 'XAF'}"
