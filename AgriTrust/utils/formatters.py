"""
Formatting helpers shared across Streamlit pages.
Currency formatting, status badges, date helpers.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, date
from typing import Union


def format_currency(amount: Union[int, float, Decimal, str, None]) -> str:
    """Format amount as Indian Rupee currency string."""
    if amount is None:
        return "₹0.00"
    try:
        if isinstance(amount, str):
            amount = Decimal(amount)
        elif isinstance(amount, (int, float)):
            amount = Decimal(str(amount))
        return f"₹{amount:,.2f}"
    except (InvalidOperation, ValueError):
        return f"₹{amount}"


def format_date(dt: Union[datetime, date, None]) -> str:
    """Format date for display."""
    if dt is None:
        return "N/A"
    if isinstance(dt, datetime):
        return dt.strftime("%d %b %Y, %I:%M %p")
    return dt.strftime("%d %b %Y")


def status_badge(status: str) -> str:
    """Return a display label for loan status values."""
    badges = {
        "pending": "Pending Review",
        "approved": "Approved",
        "disbursed": "Disbursed",
        "repaid": "Fully Repaid",
        "rejected": "Rejected",
    }
    return badges.get(status, status.replace("_", " ").title())


def risk_badge(risk_level: str) -> str:
    """Colour marker for a risk tier."""
    markers = {
        "Low": "🟢 Low",
        "Medium": "🟡 Medium",
        "High": "🟠 High",
        "Very High": "🔴 Very High",
    }
    return markers.get(risk_level, risk_level)


def to_decimal(value: Union[float, int, str]) -> Decimal:
    """Safely convert a Streamlit number_input value to Decimal."""
    return Decimal(str(value))
