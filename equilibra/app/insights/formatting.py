from __future__ import annotations


def format_brl(value: float) -> str:
    """Render an amount as Brazilian reais: 1234.5 -> 'R$ 1.234,50'."""
    rounded = round(float(value), 2)
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,.2f}"
    # swap the en-US separators for pt-BR ones
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {grouped}"


def format_percent(ratio: float, digits: int = 0) -> str:
    return f"{ratio * 100:.{digits}f}%"
