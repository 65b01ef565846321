"""
Input Validation Utilities
Provides validation functions for farm records and loan terms
"""

from decimal import Decimal, InvalidOperation
from datetime import date
from typing import Any, Optional

from core.models.entities import Season, CropStatus, enum_value
from utils.exceptions import ValidationException, InvalidAmountException

# ─── Loan Term Bounds ─────────────────────────────────────────────────────────
MAX_LOAN_AMOUNT = Decimal("10000000")    # ₹1 crore
MAX_INTEREST_RATE = Decimal("30")
MIN_DURATION_MONTHS = 1
MAX_DURATION_MONTHS = 120

class LendingValidator:
    """Validation utilities for loan terms"""

    @staticmethod
    def to_decimal(value: Any, field_name: str = "Amount") -> Decimal:
        """Coerce user input to Decimal, rejecting anything non-numeric"""
        if isinstance(value, bool) or value is None:
            raise InvalidAmountException(f"{field_name} must be a number")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidAmountException(f"{field_name} must be a number")
        if not amount.is_finite():
            raise InvalidAmountException(f"{field_name} must be a number")
        return amount

    @staticmethod
    def validate_amount(amount: Decimal, max_amount: Decimal = MAX_LOAN_AMOUNT,
                        field_name: str = "Loan amount") -> bool:
        """Validate a monetary amount: positive and within the ceiling"""
        if not isinstance(amount, Decimal):
            raise InvalidAmountException(f"{field_name} must be a Decimal")

        if amount <= 0:
            raise InvalidAmountException(f"{field_name} must be greater than 0")

        if max_amount is not None and amount > max_amount:
            raise InvalidAmountException(f"{field_name} cannot exceed ₹{max_amount:,}")

        return True

    @staticmethod
    def validate_interest_rate(rate: Decimal) -> bool:
        """Annual rate must satisfy 0 < rate <= 30"""
        if not isinstance(rate, Decimal):
            raise InvalidAmountException("Interest rate must be a Decimal")

        if rate <= 0 or rate > MAX_INTEREST_RATE:
            raise InvalidAmountException(f"Interest rate must be between 0% and {MAX_INTEREST_RATE}%")

        return True

    @staticmethod
    def validate_duration(months: int) -> bool:
        """Validate loan tenure in months"""
        if not isinstance(months, int) or isinstance(months, bool):
            raise InvalidAmountException("Loan duration must be an integer number of months")

        if months < MIN_DURATION_MONTHS or months > MAX_DURATION_MONTHS:
            raise InvalidAmountException(
                f"Loan duration must be between {MIN_DURATION_MONTHS} and {MAX_DURATION_MONTHS} months"
            )

        return True

    @staticmethod
    def validate_reason(reason: Optional[str]) -> bool:
        """Rejections must carry a reason"""
        if not reason or not reason.strip():
            raise ValidationException("A rejection reason is required")

        return True

class FarmRecordValidator:
    """Invariants for farm and crop records"""

    @staticmethod
    def validate_land_size(land_size_acres: Decimal) -> bool:
        if land_size_acres is None or land_size_acres <= 0:
            raise ValidationException("Land size must be greater than 0 acres")
        return True

    @staticmethod
    def validate_season(season: str) -> bool:
        allowed = [s.value for s in Season]
        if season not in allowed:
            raise ValidationException(f"season must be one of: {', '.join(allowed)}")
        return True

    @staticmethod
    def validate_crop_status(status: str) -> bool:
        allowed = [s.value for s in CropStatus]
        if status not in allowed:
            raise ValidationException(f"crop_status must be one of: {', '.join(allowed)}")
        return True

    @staticmethod
    def validate_harvest_date(sowing_date: date, harvest_date: Optional[date],
                              field_name: str = "harvest date") -> bool:
        """A harvest date, when set, must fall strictly after sowing"""
        if harvest_date is not None and sowing_date is not None and harvest_date <= sowing_date:
            raise ValidationException(f"{field_name} must be after sowing_date")
        return True

    @staticmethod
    def validate_crop_area(area_acres: Optional[Decimal], farm_land_size: Decimal) -> bool:
        if area_acres is None:
            return True
        if area_acres <= 0:
            raise ValidationException("Crop area must be greater than 0 acres")
        if area_acres > farm_land_size:
            raise ValidationException(
                f"Crop area ({area_acres} acres) cannot exceed farm size ({farm_land_size} acres)"
            )
        return True

    @staticmethod
    def validate_yield(yield_qtl: Optional[Decimal], field_name: str = "yield") -> bool:
        if yield_qtl is not None and yield_qtl < 0:
            raise ValidationException(f"{field_name} must be a non-negative number")
        return True

    @staticmethod
    def validate_crop(crop, farm) -> bool:
        """Every invariant a stored crop must satisfy on its farm"""
        if not crop.crop_type or not crop.crop_type.strip():
            raise ValidationException("crop_type is required")
        if crop.sowing_date is None:
            raise ValidationException("sowing_date is required")
        FarmRecordValidator.validate_season(crop.season)
        FarmRecordValidator.validate_crop_status(enum_value(crop.crop_status))
        FarmRecordValidator.validate_harvest_date(crop.sowing_date, crop.expected_harvest_date,
                                                  "expected_harvest_date")
        FarmRecordValidator.validate_harvest_date(crop.sowing_date, crop.actual_harvest_date,
                                                  "actual_harvest_date")
        FarmRecordValidator.validate_crop_area(crop.area_acres, farm.land_size_acres)
        FarmRecordValidator.validate_yield(crop.expected_yield_qtl, "expected_yield_qtl")
        FarmRecordValidator.validate_yield(crop.actual_yield_qtl, "actual_yield_qtl")
        return True
