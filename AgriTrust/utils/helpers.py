"""
Helper Utilities
Common utility functions for scoring and lending operations
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, date
from typing import Dict, Any, Union
import logging

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

class NumberUtils:
    """Utility functions for number operations"""

    @staticmethod
    def to_decimal(value: Union[int, float, str, Decimal]) -> Decimal:
        """Convert a numeric value to Decimal without float artefacts"""
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))

    @staticmethod
    def round_currency(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places for currency"""
        return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    @staticmethod
    def round_whole(amount: Decimal) -> Decimal:
        """Round amount to the nearest whole currency unit"""
        return amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP)

    @staticmethod
    def round_score(value: float) -> int:
        """Round a score half up (Python's round() is half-even)"""
        return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @staticmethod
    def calculate_percentage(amount: Decimal, percentage: Decimal) -> Decimal:
        """Calculate percentage of an amount"""
        result = amount * (percentage / 100)
        return NumberUtils.round_currency(result)

class DateUtils:
    """Utility functions for date operations"""

    @staticmethod
    def add_months(start_date: date, months: int) -> date:
        """Add months to a date"""
        return start_date + relativedelta(months=months)

    @staticmethod
    def years_between(start: datetime, end: datetime) -> float:
        """Elapsed years using a 365-day year"""
        return (end - start).total_seconds() / (60 * 60 * 24 * 365)

class StringUtils:
    """Utility functions for string operations"""

    @staticmethod
    def generate_reference_number(prefix: str = "TXN") -> str:
        """Generate unique reference number"""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        unique_id = str(uuid.uuid4())[:8].upper()
        return f"{prefix}{timestamp}{unique_id}"

    @staticmethod
    def timestamp_suffix_id(prefix: str) -> str:
        """Identifier from the last six digits of the epoch milliseconds"""
        millis = str(int(datetime.now().timestamp() * 1000))
        return f"{prefix}{millis[-6:]}"

    @staticmethod
    def clean_string(text: str) -> str:
        """Clean and normalize string input"""
        if not text:
            return ""

        return " ".join(text.strip().split())

class LoggingUtils:
    """Logging utility functions"""

    @staticmethod
    def log_business_event(event_type: str, entity_type: str, entity_id: str,
                          user_id: str = None, details: Dict[str, Any] = None):
        """Log business events"""
        log_data = {
            'event_type': event_type,
            'entity_type': entity_type,
            'entity_id': entity_id,
            'user_id': user_id,
            'timestamp': datetime.now().isoformat(),
            'details': details or {}
        }

        logger.info(f"Business Event: {event_type}", extra=log_data)
