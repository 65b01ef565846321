"""
Loan Repository
Handles database operations for the loans and loan_repayments tables
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
import logging
from mysql.connector import Error

from core.repositories.base_repository import BaseRepository
from core.models.entities import Loan, LoanStatus, Repayment, enum_value
from utils.exceptions import DatabaseException

logger = logging.getLogger(__name__)

REPAYABLE_STATUSES = (LoanStatus.APPROVED.value, LoanStatus.DISBURSED.value)

class LoanRepository(BaseRepository):
    """Repository for loans table operations"""

    def __init__(self, db=None):
        super().__init__('loans', 'loan_id', db)

    def create_loan(self, loan: Loan) -> str:
        """Insert a new loan application"""
        loan_data = {
            'loan_id': loan.loan_id,
            'farmer_id': loan.farmer_id,
            'loan_amount': loan.loan_amount,
            'interest_rate': loan.interest_rate,
            'loan_duration_months': loan.loan_duration_months,
            'loan_purpose': loan.loan_purpose,
            'lender_name': loan.lender_name,
            'lender_type': loan.lender_type,
            'trust_score_at_application': loan.trust_score_at_application,
            'risk_level': loan.risk_level,
            'emi_amount': loan.emi_amount,
            'outstanding_amount': loan.outstanding_amount,
            'amount_repaid': loan.amount_repaid,
            'loan_status': enum_value(loan.loan_status),
            'application_date': loan.application_date,
            'repayment_due_date': loan.repayment_due_date
        }

        return self.create(loan_data)

    def find_loan_by_id(self, loan_id: str) -> Optional[Loan]:
        """Find loan by ID"""
        loan_data = self.find_by_id(loan_id)
        if not loan_data:
            return None

        return self._dict_to_loan(loan_data)

    def find_by_farmer(self, farmer_id: str) -> List[Loan]:
        """All loans for a farmer, newest application first"""
        loans_data = self.find_by_field('farmer_id', farmer_id, order_by='application_date DESC')
        return [self._dict_to_loan(loan_data) for loan_data in loans_data]

    def find_applications(self, status: str = LoanStatus.PENDING.value, min_score: int = None,
                          max_score: int = None, risk_level: str = None) -> List[Loan]:
        """Loans in one status, newest application first, optionally narrowed by score and tier"""
        conditions = ["loan_status = %s"]
        params = [enum_value(status)]
        if min_score is not None:
            conditions.append("trust_score_at_application >= %s")
            params.append(min_score)
        if max_score is not None:
            conditions.append("trust_score_at_application <= %s")
            params.append(max_score)
        if risk_level:
            conditions.append("risk_level = %s")
            params.append(risk_level)

        try:
            query = f"""
                SELECT * FROM {self.table_name}
                WHERE {' AND '.join(conditions)}
                ORDER BY application_date DESC
            """
            results = self.db.execute_query(query, tuple(params), fetch_all=True)
            return [self._dict_to_loan(row) for row in results or []]
        except Error as e:
            logger.error(f"Error finding loan applications: {e}")
            raise DatabaseException(f"Failed to find loan applications: {str(e)}")

    # ── State transitions (guarded on the current status) ─────────────────────
    def mark_approved(self, loan_id: str, bank_id: str, approved_amount, interest_rate,
                      tenure_seasons: int, emi_amount, outstanding_amount,
                      approval_date: datetime, repayment_due_date) -> bool:
        """Move a pending loan to approved"""
        return self.update(loan_id, {
            'bank_id': bank_id,
            'loan_status': LoanStatus.APPROVED.value,
            'approved_amount': approved_amount,
            'interest_rate': interest_rate,
            'tenure_seasons': tenure_seasons,
            'emi_amount': emi_amount,
            'outstanding_amount': outstanding_amount,
            'approval_date': approval_date,
            'repayment_due_date': repayment_due_date
        }, 'loan_status = %s', (LoanStatus.PENDING.value,))

    def mark_rejected(self, loan_id: str, bank_id: str, reason: str) -> bool:
        """Move a pending loan to rejected"""
        return self.update(loan_id, {
            'bank_id': bank_id,
            'loan_status': LoanStatus.REJECTED.value,
            'rejection_reason': reason
        }, 'loan_status = %s', (LoanStatus.PENDING.value,))

    def mark_disbursed(self, loan_id: str, bank_id: str, transaction_id: str,
                       disbursement_date: datetime) -> bool:
        """Move an approved loan to disbursed; only the approving institution matches"""
        return self.update(loan_id, {
            'loan_status': LoanStatus.DISBURSED.value,
            'transaction_id': transaction_id,
            'disbursement_date': disbursement_date
        }, 'loan_status = %s AND bank_id = %s', (LoanStatus.APPROVED.value, bank_id))

    # ── Repayment ledger ───────────────────────────────────────────────────────
    def record_repayment(self, repayment: Repayment) -> Optional[Loan]:
        """Apply a repayment and append it to the ledger in one transaction.

        The balance update is a single conditional UPDATE, so concurrent
        repayments on the same loan serialize on the row lock. MySQL evaluates
        the SET list left to right, hence the status is decided before the
        outstanding amount changes. Returns None (and writes nothing) when the
        loan is no longer repayable.
        """
        amount = repayment.repayment_amount
        try:
            with self.db.get_transaction() as conn:
                cursor = conn.cursor(dictionary=True)
                try:
                    cursor.execute(f"""
                        UPDATE {self.table_name}
                        SET loan_status = IF(outstanding_amount - %s <= 0, %s, loan_status),
                            amount_repaid = amount_repaid + %s,
                            outstanding_amount = GREATEST(outstanding_amount - %s, 0)
                        WHERE loan_id = %s AND loan_status IN (%s, %s)
                    """, (amount, LoanStatus.REPAID.value, amount, amount,
                          repayment.loan_id) + REPAYABLE_STATUSES)

                    if cursor.rowcount == 0:
                        return None

                    cursor.execute("""
                        INSERT INTO loan_repayments (repayment_id, loan_id, repayment_amount,
                                                     payment_method, transaction_id, repayment_date)
                        VALUES (%s, %s, %s, %s, %s, %s)
                    """, (repayment.repayment_id, repayment.loan_id, amount,
                          repayment.payment_method, repayment.transaction_id,
                          repayment.repayment_date or datetime.now()))

                    cursor.execute(f"SELECT * FROM {self.table_name} WHERE loan_id = %s",
                                   (repayment.loan_id,))
                    return self._dict_to_loan(cursor.fetchone())
                finally:
                    cursor.close()
        except Error as e:
            logger.error(f"Error recording repayment for loan {repayment.loan_id}: {e}")
            raise DatabaseException(f"Failed to record repayment: {str(e)}")

    def get_repayments(self, loan_id: str) -> List[Repayment]:
        """Repayment history for a loan, newest first"""
        try:
            query = """
                SELECT * FROM loan_repayments
                WHERE loan_id = %s
                ORDER BY repayment_date DESC
            """
            results = self.db.execute_query(query, (loan_id,), fetch_all=True)
            return [self._dict_to_repayment(row) for row in results or []]
        except Error as e:
            logger.error(f"Error getting repayments for loan {loan_id}: {e}")
            raise DatabaseException(f"Failed to get repayments: {str(e)}")

    def _dict_to_repayment(self, data: Dict[str, Any]) -> Repayment:
        """Convert dictionary to Repayment object"""
        return Repayment(
            repayment_id=data['repayment_id'],
            loan_id=data['loan_id'],
            repayment_amount=data['repayment_amount'],
            payment_method=data.get('payment_method') or 'Online',
            transaction_id=data.get('transaction_id', ''),
            repayment_date=data.get('repayment_date')
        )

    def _dict_to_loan(self, loan_data: dict) -> Loan:
        """Convert dictionary to Loan object"""
        return Loan(
            loan_id=loan_data['loan_id'],
            farmer_id=loan_data['farmer_id'],
            bank_id=loan_data.get('bank_id'),
            loan_amount=loan_data['loan_amount'],
            approved_amount=loan_data.get('approved_amount'),
            interest_rate=loan_data['interest_rate'],
            loan_duration_months=loan_data['loan_duration_months'],
            tenure_seasons=loan_data.get('tenure_seasons'),
            loan_purpose=loan_data.get('loan_purpose'),
            lender_name=loan_data.get('lender_name'),
            lender_type=loan_data.get('lender_type'),
            trust_score_at_application=loan_data.get('trust_score_at_application') or 0,
            risk_level=loan_data.get('risk_level'),
            emi_amount=loan_data['emi_amount'],
            outstanding_amount=loan_data['outstanding_amount'],
            amount_repaid=loan_data.get('amount_repaid') or Decimal('0'),
            loan_status=LoanStatus(loan_data['loan_status']),
            rejection_reason=loan_data.get('rejection_reason'),
            transaction_id=loan_data.get('transaction_id'),
            application_date=loan_data.get('application_date'),
            approval_date=loan_data.get('approval_date'),
            disbursement_date=loan_data.get('disbursement_date'),
            repayment_due_date=loan_data.get('repayment_due_date')
        )
