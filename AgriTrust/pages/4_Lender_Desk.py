"""
Lender Desk Page - browse applications, then approve, reject, disburse and track loans.
"""

import streamlit as st
import pandas as pd

from utils.sidebar import render_sidebar, current_bank_id, show_error
from utils.formatters import format_currency, format_date, status_badge, to_decimal
from core.services.loan_service import LoanService
from core.models.entities import LoanStatus, RiskLevel

render_sidebar()

st.title("Lender Desk")
st.markdown("---")

bank_id = current_bank_id()
if not bank_id:
    st.info("Enter a Lending Institution ID in the sidebar to continue.")
    st.stop()

loan_svc = LoanService()

st.subheader("Applications")
f1, f2, f3 = st.columns(3)
with f1:
    status_filter = st.selectbox("Status", [s.value for s in LoanStatus], key="queue_status")
with f2:
    score_range = st.slider("Trust score at application", 0, 100, (0, 100), key="queue_scores")
with f3:
    tier_filter = st.selectbox("Risk level", ["Any"] + [r.value for r in RiskLevel], key="queue_tier")

try:
    queue = loan_svc.list_applications(
        status=status_filter,
        min_score=score_range[0],
        max_score=score_range[1],
        risk_level=None if tier_filter == "Any" else tier_filter,
    )
    if queue["applications"]:
        df = pd.DataFrame(queue["applications"])
        df["requested_amount"] = df["requested_amount"].map(format_currency)
        df["application_date"] = df["application_date"].map(format_date)
        st.dataframe(df[["loan_id", "farmer_name", "requested_amount", "interest_rate",
                         "duration_months", "credit_score", "risk_level", "loan_purpose",
                         "application_date"]],
                     use_container_width=True, hide_index=True)
    else:
        st.info("No applications match these filters.")
    st.caption(f"{queue['total_applications']} application(s)")
except Exception as e:
    show_error(e)

st.markdown("---")

loan_id = st.text_input("Loan ID", key="desk_loan_id").strip()
if not loan_id:
    st.stop()

try:
    loan = loan_svc.track_loan(loan_id)
except Exception as e:
    show_error(e)
    st.stop()

st.subheader(f"{loan_id} - {status_badge(loan['loan_status'])}")
m1, m2, m3, m4 = st.columns(4)
m1.metric("Principal", format_currency(loan["principal"]))
m2.metric("EMI", format_currency(loan["emi_amount"]))
m3.metric("Outstanding", format_currency(loan["outstanding_amount"]))
m4.metric("Repaid", f"{loan['repayment_percentage']}%")
st.caption(f"Farmer {loan['farmer_id']} - due {format_date(loan['repayment_due_date'])}")

tab_approve, tab_reject, tab_disburse = st.tabs(["Approve", "Reject", "Disburse"])

with tab_approve:
    with st.form("approve_form"):
        approved = st.number_input("Approved Amount (INR)", min_value=1.0,
                                   value=float(loan["principal"]), step=1000.0, format="%.2f")
        rate = st.number_input("Interest Rate (% p.a.)", min_value=0.1, max_value=30.0,
                               value=float(loan["interest_rate"]), step=0.25)
        approve = st.form_submit_button("Approve", use_container_width=True)
    if approve:
        try:
            result = loan_svc.approve_loan(loan_id, bank_id, to_decimal(approved), to_decimal(rate))
            st.success(f"{result['message']} - EMI {format_currency(result['emi_amount'])}")
        except Exception as e:
            show_error(e)

with tab_reject:
    with st.form("reject_form"):
        reason = st.text_area("Reason", placeholder="Why is this application rejected?")
        reject = st.form_submit_button("Reject", use_container_width=True)
    if reject:
        try:
            result = loan_svc.reject_loan(loan_id, bank_id, reason)
            st.success(result["message"])
        except Exception as e:
            show_error(e)

with tab_disburse:
    if st.button("Disburse Funds", use_container_width=True, key="disburse"):
        try:
            result = loan_svc.disburse_loan(loan_id, bank_id)
            st.success(f"{result['message']} - reference `{result['transaction_id']}`")
        except Exception as e:
            show_error(e)
