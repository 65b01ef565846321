"""
Loan Service — applications, approvals, disbursement and the repayment ledger.

State machine:
  pending → approved → disbursed → repaid
  pending → rejected (terminal)

Every transition is written as a guarded UPDATE on the current status, so a
transition that lost a race writes nothing and is reported as invalid.
"""
import math
from decimal import Decimal
from datetime import datetime
from typing import Callable, Dict, Any, Optional

from core.models.entities import Loan, LoanStatus, Repayment, RiskLevel
from core.repositories.loan_repository import LoanRepository
from core.repositories.farmer_repository import FarmerRepository
from core.repositories.sequence_repository import SequenceRepository
from core.services.amortization_service import AmortizationCalculator
from utils.exceptions import (
    FarmerNotFoundException, LoanNotFoundException, InvalidAmountException,
    InvalidTransitionException, AlreadyRepaidException, AuthorizationException, ValidationException,
)
from utils.helpers import NumberUtils, DateUtils, StringUtils, LoggingUtils
from utils.validators import LendingValidator

# ─── Application Defaults ─────────────────────────────────────────────────────
DEFAULT_PURPOSE = "Agricultural purposes"
DEFAULT_LENDER_NAME = "To be assigned"
DEFAULT_LENDER_TYPE = "Bank"
PROCESSING_FEE_PERCENT = Decimal("1")
DEFAULT_PAYMENT_METHOD = "Online"
MONTHS_PER_SEASON = 6

REPAYABLE = (LoanStatus.APPROVED, LoanStatus.DISBURSED)
ACTIVE = (LoanStatus.APPROVED, LoanStatus.DISBURSED)


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    return {
        'loan_id': loan.loan_id,
        'farmer_id': loan.farmer_id,
        'bank_id': loan.bank_id,
        'loan_amount': loan.loan_amount,
        'approved_amount': loan.approved_amount,
        'interest_rate': loan.interest_rate,
        'loan_duration_months': loan.loan_duration_months,
        'tenure_seasons': loan.tenure_seasons,
        'loan_purpose': loan.loan_purpose,
        'lender_name': loan.lender_name,
        'lender_type': loan.lender_type,
        'trust_score_at_application': loan.trust_score_at_application,
        'risk_level': loan.risk_level,
        'emi_amount': loan.emi_amount,
        'outstanding_amount': loan.outstanding_amount,
        'amount_repaid': loan.amount_repaid,
        'loan_status': loan.loan_status.value,
        'rejection_reason': loan.rejection_reason,
        'transaction_id': loan.transaction_id,
        'application_date': loan.application_date,
        'approval_date': loan.approval_date,
        'disbursement_date': loan.disbursement_date,
        'repayment_due_date': loan.repayment_due_date,
    }


def _as_date(value):
    return value.date() if isinstance(value, datetime) else value


class LoanService:
    def __init__(self, loan_repo: LoanRepository = None, farmer_repo: FarmerRepository = None,
                 sequence_repo: SequenceRepository = None,
                 clock: Callable[[], datetime] = None):
        self.loan_repo = loan_repo or LoanRepository()
        self.farmer_repo = farmer_repo or FarmerRepository()
        self.sequence_repo = sequence_repo or SequenceRepository()
        self.clock = clock or datetime.now

    def _get_loan(self, loan_id: str) -> Loan:
        loan = self.loan_repo.find_loan_by_id(loan_id)
        if not loan:
            raise LoanNotFoundException(f"No loan found with ID: {loan_id}")
        return loan

    def _transition_lost(self, loan_id: str, action: str):
        """A guarded update matched no row; report the state it actually found"""
        current = self._get_loan(loan_id)
        if current.loan_status == LoanStatus.REPAID:
            raise AlreadyRepaidException(f"Loan {loan_id} is already fully repaid")
        raise InvalidTransitionException(
            f"Cannot {action} loan {loan_id} in status '{current.loan_status.value}'"
        )

    def _emi(self, principal: Decimal, rate: Decimal, months: int, field_name: str) -> Decimal:
        """Monthly installment; an amount too small to owe a whole rupee a month is refused"""
        emi = AmortizationCalculator.emi(principal, rate, months)
        if emi <= 0:
            raise InvalidAmountException(
                f"{field_name} ₹{principal:,} is too small to repay over {months} months"
            )
        return emi

    # ── Loan Application ───────────────────────────────────────────────────────
    def apply_loan(self, farmer_id: str, loan_amount, interest_rate, loan_duration_months: int,
                   loan_purpose: Optional[str] = None, lender_name: Optional[str] = None,
                   lender_type: Optional[str] = None) -> Dict[str, Any]:
        """Create a pending loan carrying the farmer's current score and tier"""
        amount = LendingValidator.to_decimal(loan_amount, "Loan amount")
        rate = LendingValidator.to_decimal(interest_rate, "Interest rate")
        LendingValidator.validate_amount(amount)
        LendingValidator.validate_interest_rate(rate)
        LendingValidator.validate_duration(loan_duration_months)

        farmer = self.farmer_repo.find_farmer(farmer_id)
        if not farmer:
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        emi = self._emi(amount, rate, loan_duration_months, "Loan amount")
        total_payable = emi * loan_duration_months
        now = self.clock()

        loan = Loan(
            loan_id=self.sequence_repo.next_id("LOAN", "loan"),
            farmer_id=farmer_id,
            loan_amount=amount,
            interest_rate=rate,
            loan_duration_months=loan_duration_months,
            loan_purpose=StringUtils.clean_string(loan_purpose) or DEFAULT_PURPOSE,
            lender_name=lender_name or DEFAULT_LENDER_NAME,
            lender_type=lender_type or DEFAULT_LENDER_TYPE,
            trust_score_at_application=farmer.trust_score or 0,
            risk_level=farmer.risk_level or RiskLevel.HIGH.value,
            emi_amount=emi,
            outstanding_amount=total_payable,
            amount_repaid=Decimal("0"),
            loan_status=LoanStatus.PENDING,
            application_date=now,
            repayment_due_date=DateUtils.add_months(now.date(), loan_duration_months),
        )
        self.loan_repo.create_loan(loan)

        LoggingUtils.log_business_event(
            "loan_applied", "loan", loan.loan_id, user_id=farmer_id,
            details={'loan_amount': str(amount), 'interest_rate': str(rate),
                     'duration_months': loan_duration_months}
        )

        return {
            'loan_id': loan.loan_id,
            'loan_status': loan.loan_status.value,
            'loan_amount': amount,
            'interest_rate': rate,
            'loan_duration_months': loan_duration_months,
            'emi_amount': emi,
            'total_payable': total_payable,
            'processing_fee': NumberUtils.calculate_percentage(amount, PROCESSING_FEE_PERCENT),
            'trust_score_at_application': loan.trust_score_at_application,
            'risk_level': loan.risk_level,
            'application_date': now,
            'repayment_due_date': loan.repayment_due_date,
            'message': "Loan application submitted successfully",
        }

    # ── Lender Decisions ───────────────────────────────────────────────────────
    def approve_loan(self, loan_id: str, bank_id: str, approved_amount,
                     interest_rate=None, tenure_seasons: Optional[int] = None) -> Dict[str, Any]:
        """Approve a pending loan; EMI and outstanding follow the approved terms"""
        approved = LendingValidator.to_decimal(approved_amount, "Approved amount")
        LendingValidator.validate_amount(approved, field_name="Approved amount")
        rate = None
        if interest_rate is not None:
            rate = LendingValidator.to_decimal(interest_rate, "Interest rate")
            LendingValidator.validate_interest_rate(rate)

        loan = self._get_loan(loan_id)
        if loan.loan_status != LoanStatus.PENDING:
            raise InvalidTransitionException(
                f"Only pending loans can be approved (loan {loan_id} is '{loan.loan_status.value}')"
            )
        if approved > loan.loan_amount:
            raise InvalidAmountException(
                f"Approved amount ₹{approved:,} exceeds requested amount ₹{loan.loan_amount:,}"
            )

        rate = rate if rate is not None else loan.interest_rate
        months = loan.loan_duration_months
        seasons = tenure_seasons or math.ceil(months / MONTHS_PER_SEASON)
        emi = self._emi(approved, rate, months, "Approved amount")
        outstanding = emi * months
        now = self.clock()
        due_date = DateUtils.add_months(now.date(), months)

        updated = self.loan_repo.mark_approved(
            loan_id, bank_id, approved, rate, seasons, emi, outstanding, now, due_date
        )
        if not updated:
            self._transition_lost(loan_id, "approve")

        LoggingUtils.log_business_event(
            "loan_approved", "loan", loan_id, user_id=bank_id,
            details={'approved_amount': str(approved), 'interest_rate': str(rate)}
        )

        return {
            'loan_id': loan_id,
            'loan_status': LoanStatus.APPROVED.value,
            'bank_id': bank_id,
            'approved_amount': approved,
            'interest_rate': rate,
            'tenure_seasons': seasons,
            'emi_amount': emi,
            'outstanding_amount': outstanding,
            'approval_date': now,
            'repayment_due_date': due_date,
            'message': "Loan approved successfully",
        }

    def reject_loan(self, loan_id: str, bank_id: str, reason: str) -> Dict[str, Any]:
        LendingValidator.validate_reason(reason)

        loan = self._get_loan(loan_id)
        if loan.loan_status != LoanStatus.PENDING:
            raise InvalidTransitionException(
                f"Only pending loans can be rejected (loan {loan_id} is '{loan.loan_status.value}')"
            )

        reason = reason.strip()
        if not self.loan_repo.mark_rejected(loan_id, bank_id, reason):
            self._transition_lost(loan_id, "reject")

        LoggingUtils.log_business_event(
            "loan_rejected", "loan", loan_id, user_id=bank_id, details={'reason': reason}
        )

        return {
            'loan_id': loan_id,
            'loan_status': LoanStatus.REJECTED.value,
            'bank_id': bank_id,
            'rejection_reason': reason,
            'message': "Loan application rejected",
        }

    def disburse_loan(self, loan_id: str, bank_id: str) -> Dict[str, Any]:
        """Release funds; only the approving institution may disburse"""
        loan = self._get_loan(loan_id)
        if loan.loan_status != LoanStatus.APPROVED:
            raise InvalidTransitionException(
                f"Only approved loans can be disbursed (loan {loan_id} is '{loan.loan_status.value}')"
            )
        if loan.bank_id != bank_id:
            raise AuthorizationException(
                f"Loan {loan_id} can only be disbursed by the approving institution"
            )

        transaction_id = StringUtils.generate_reference_number("TXN")
        now = self.clock()
        if not self.loan_repo.mark_disbursed(loan_id, bank_id, transaction_id, now):
            self._transition_lost(loan_id, "disburse")

        LoggingUtils.log_business_event(
            "loan_disbursed", "loan", loan_id, user_id=bank_id,
            details={'transaction_id': transaction_id}
        )

        return {
            'loan_id': loan_id,
            'loan_status': LoanStatus.DISBURSED.value,
            'transaction_id': transaction_id,
            'disbursed_amount': loan.approved_amount or loan.loan_amount,
            'disbursement_date': now,
            'message': "Loan disbursed successfully",
        }

    # ── Repayment ──────────────────────────────────────────────────────────────
    def repay_loan(self, loan_id: str, repayment_amount, payment_method: str = DEFAULT_PAYMENT_METHOD,
                   paid_by: Optional[str] = None) -> Dict[str, Any]:
        """Apply a repayment against the outstanding balance.

        The balance change and the ledger entry are written by the repository
        in one atomic step, so concurrent repayments never lose an update.
        """
        amount = LendingValidator.to_decimal(repayment_amount, "Repayment amount")
        LendingValidator.validate_amount(amount, max_amount=None, field_name="Repayment amount")

        loan = self._get_loan(loan_id)
        if paid_by is not None and paid_by != loan.farmer_id:
            raise AuthorizationException(f"Loan {loan_id} does not belong to {paid_by}")
        if loan.loan_status == LoanStatus.REPAID:
            raise AlreadyRepaidException(f"Loan {loan_id} is already fully repaid")
        if loan.loan_status not in REPAYABLE:
            raise InvalidTransitionException(
                f"Cannot repay loan {loan_id} in status '{loan.loan_status.value}'"
            )

        repayment = Repayment(
            repayment_id=self.sequence_repo.next_id("REP", "repayment"),
            loan_id=loan_id,
            repayment_amount=amount,
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            transaction_id=StringUtils.generate_reference_number("TXN"),
            repayment_date=self.clock(),
        )
        updated = self.loan_repo.record_repayment(repayment)
        if updated is None:
            self._transition_lost(loan_id, "repay")

        fully_repaid = updated.loan_status == LoanStatus.REPAID
        LoggingUtils.log_business_event(
            "loan_repayment", "loan", loan_id, user_id=loan.farmer_id,
            details={'repayment_id': repayment.repayment_id, 'amount': str(amount),
                     'outstanding_amount': str(updated.outstanding_amount)}
        )

        result = {
            'repayment_id': repayment.repayment_id,
            'loan_id': loan_id,
            'repayment_amount': amount,
            'payment_method': repayment.payment_method,
            'transaction_id': repayment.transaction_id,
            'repayment_date': repayment.repayment_date,
            'amount_repaid': updated.amount_repaid,
            'outstanding_amount': updated.outstanding_amount,
            'loan_status': updated.loan_status.value,
            'message': "Repayment recorded successfully",
        }
        if fully_repaid:
            result['message'] = "Congratulations! Loan fully repaid"
        return result

    # ── Read-only Projections ──────────────────────────────────────────────────
    def get_loan_status(self, loan_id: str) -> Dict[str, Any]:
        loan = self._get_loan(loan_id)
        repayments = self.loan_repo.get_repayments(loan_id)
        status = loan_to_dict(loan)
        status['repayment_history'] = [
            {
                'repayment_id': r.repayment_id,
                'repayment_amount': r.repayment_amount,
                'payment_method': r.payment_method,
                'transaction_id': r.transaction_id,
                'repayment_date': r.repayment_date,
            }
            for r in repayments
        ]
        return status

    def get_loan_history(self, farmer_id: str) -> Dict[str, Any]:
        """All loans of a farmer with portfolio totals"""
        farmer = self.farmer_repo.find_farmer(farmer_id)
        if not farmer:
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        loans = self.loan_repo.find_by_farmer(farmer_id)
        zero = Decimal("0")
        summary = {
            'total_loans': len(loans),
            'active_loans': sum(1 for l in loans if l.loan_status in ACTIVE),
            'pending_loans': sum(1 for l in loans if l.loan_status == LoanStatus.PENDING),
            'completed_loans': sum(1 for l in loans if l.loan_status == LoanStatus.REPAID),
            'total_borrowed': sum((l.approved_amount or l.loan_amount for l in loans
                                   if l.loan_status in ACTIVE + (LoanStatus.REPAID,)), zero),
            'total_repaid': sum((l.amount_repaid or zero for l in loans), zero),
            'total_outstanding': sum((l.outstanding_amount or zero for l in loans
                                      if l.loan_status in ACTIVE), zero),
        }
        return {
            'farmer_id': farmer_id,
            'farmer_name': farmer.full_name,
            'summary': summary,
            'loans': [loan_to_dict(l) for l in loans],
        }

    def track_loan(self, loan_id: str) -> Dict[str, Any]:
        loan = self._get_loan(loan_id)
        principal = loan.approved_amount or loan.loan_amount
        total_payable = loan.amount_repaid + loan.outstanding_amount

        percentage = Decimal("0")
        if total_payable > 0:
            percentage = NumberUtils.round_currency(loan.amount_repaid / total_payable * 100)

        return {
            'loan_id': loan_id,
            'farmer_id': loan.farmer_id,
            'loan_status': loan.loan_status.value,
            'principal': principal,
            'interest_rate': loan.interest_rate,
            'emi_amount': loan.emi_amount,
            'total_payable': total_payable,
            'amount_repaid': loan.amount_repaid,
            'outstanding_amount': loan.outstanding_amount,
            'repayment_percentage': percentage,
            'repayment_due_date': loan.repayment_due_date,
            'disbursement_date': loan.disbursement_date,
        }

    def get_repayment_schedule(self, loan_id: str) -> Dict[str, Any]:
        """Installments from disbursement (else approval, else application)"""
        loan = self._get_loan(loan_id)
        principal = loan.approved_amount or loan.loan_amount
        start = _as_date(loan.disbursement_date or loan.approval_date
                         or loan.application_date or self.clock())

        installments = AmortizationCalculator.schedule(
            principal, loan.interest_rate, loan.loan_duration_months, start
        )
        total_payable = sum((i.emi_amount for i in installments), Decimal("0"))

        return {
            'loan_id': loan_id,
            'principal': principal,
            'interest_rate': loan.interest_rate,
            'loan_duration_months': loan.loan_duration_months,
            'start_date': start,
            'emi_amount': installments[0].emi_amount if installments else Decimal("0"),
            'total_payable': total_payable,
            'total_interest': total_payable - principal,
            'installments': installments,
        }

    # ── Lender Queue ───────────────────────────────────────────────────────────
    def list_applications(self, status: str = LoanStatus.PENDING.value, min_score: Optional[int] = None,
                          max_score: Optional[int] = None,
                          risk_level: Optional[str] = None) -> Dict[str, Any]:
        """Applications a lender can act on, newest first, with the applicant's name"""
        allowed = [s.value for s in LoanStatus]
        if status not in allowed:
            raise ValidationException(f"status must be one of: {', '.join(allowed)}")
        if risk_level and risk_level not in [r.value for r in RiskLevel]:
            raise ValidationException(f"Unknown risk level: {risk_level}")
        for bound in (min_score, max_score):
            if bound is not None and not 0 <= bound <= 100:
                raise ValidationException("Score bounds must be between 0 and 100")
        if min_score is not None and max_score is not None and min_score > max_score:
            raise ValidationException("min_score cannot exceed max_score")

        loans = self.loan_repo.find_applications(status, min_score, max_score, risk_level)

        names = {}
        for farmer_id in {l.farmer_id for l in loans}:
            farmer = self.farmer_repo.find_farmer(farmer_id)
            names[farmer_id] = farmer.full_name if farmer else "Unknown"

        applications = [
            {
                'loan_id': l.loan_id,
                'farmer_id': l.farmer_id,
                'farmer_name': names[l.farmer_id],
                'requested_amount': l.loan_amount,
                'interest_rate': l.interest_rate,
                'duration_months': l.loan_duration_months,
                'loan_purpose': l.loan_purpose,
                'credit_score': l.trust_score_at_application,
                'risk_level': l.risk_level,
                'loan_status': l.loan_status.value,
                'application_date': l.application_date,
                'lender_name': l.lender_name,
            }
            for l in loans
        ]
        return {
            'total_applications': len(applications),
            'filters': {'status': status, 'min_score': min_score, 'max_score': max_score,
                        'risk_level': risk_level},
            'applications': applications,
        }
