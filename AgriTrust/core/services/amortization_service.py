"""
Amortization Calculator — EMI, total payable and installment schedules.

Pure and deterministic: identical inputs always give identical results.
"""
from decimal import Decimal
from datetime import date
from typing import List

from core.models.entities import Installment
from utils.helpers import NumberUtils, DateUtils
from utils.exceptions import InvalidAmountException


class AmortizationCalculator:

    @staticmethod
    def monthly_rate(annual_rate_pct: Decimal) -> Decimal:
        return NumberUtils.to_decimal(annual_rate_pct) / Decimal("1200")

    @staticmethod
    def emi(principal: Decimal, annual_rate_pct: Decimal, months: int) -> Decimal:
        """Equal monthly installment rounded to the nearest rupee.

        EMI = P * m * (1+m)^n / ((1+m)^n - 1), with m = annual% / 1200
        """
        principal = NumberUtils.to_decimal(principal)
        if principal <= 0 or months <= 0:
            raise InvalidAmountException("Invalid EMI parameters")

        m = AmortizationCalculator.monthly_rate(annual_rate_pct)
        if m > 0:
            power_term = (1 + m) ** months
            emi = principal * m * power_term / (power_term - 1)
        else:
            emi = principal / months

        return NumberUtils.round_whole(emi)

    @staticmethod
    def total_payable(principal: Decimal, annual_rate_pct: Decimal, months: int) -> Decimal:
        """EMI x months; used to initialise a loan's outstanding amount"""
        return AmortizationCalculator.emi(principal, annual_rate_pct, months) * months

    @staticmethod
    def schedule(principal: Decimal, annual_rate_pct: Decimal, months: int,
                 start_date: date) -> List[Installment]:
        """One installment per month, due start_date + N months"""
        principal = NumberUtils.to_decimal(principal)
        emi = AmortizationCalculator.emi(principal, annual_rate_pct, months)
        m = AmortizationCalculator.monthly_rate(annual_rate_pct)

        balance = principal
        installments = []
        for number in range(1, months + 1):
            interest = NumberUtils.round_currency(balance * m)
            principal_part = emi - interest
            balance = max(Decimal("0.00"), NumberUtils.round_currency(balance - principal_part))

            installments.append(Installment(
                installment_number=number,
                due_date=DateUtils.add_months(start_date, number),
                emi_amount=emi,
                interest_component=interest,
                principal_component=principal_part,
                balance_after=balance,
            ))

        return installments
