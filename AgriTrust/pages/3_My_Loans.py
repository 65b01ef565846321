"""
My Loans Page - apply, repay, and follow the farmer's loans.
"""

import streamlit as st
import pandas as pd

from utils.sidebar import render_sidebar, current_farmer_id, show_error
from utils.formatters import format_currency, format_date, status_badge, to_decimal
from core.services.loan_service import LoanService
from core.services.amortization_service import AmortizationCalculator
from utils.validators import MAX_LOAN_AMOUNT, MAX_INTEREST_RATE, MIN_DURATION_MONTHS, MAX_DURATION_MONTHS

render_sidebar()

st.title("My Loans")
st.markdown("---")

farmer_id = current_farmer_id()
if not farmer_id:
    st.info("Enter a Farmer ID in the sidebar to continue.")
    st.stop()

loan_svc = LoanService()
tab_apply, tab_loans, tab_schedule = st.tabs(["Apply for Loan", "My Loans", "Repayment Schedule"])

# -----------------------------------------------------------------------
# TAB 1 - Apply
# -----------------------------------------------------------------------
with tab_apply:
    st.subheader("New Loan Application")
    preset = st.session_state.get("selected_offer") or {}
    if preset:
        st.info(f"Using terms from **{preset['lender_name']}**")

    with st.form("loan_application_form"):
        la_col1, la_col2 = st.columns(2)
        with la_col1:
            amount = st.number_input("Loan Amount (INR)", min_value=1000.0,
                                     max_value=float(MAX_LOAN_AMOUNT), value=100000.0,
                                     step=1000.0, format="%.2f", key="apply_amount")
            rate = st.number_input("Interest Rate (% p.a.)", min_value=0.1,
                                   max_value=float(MAX_INTEREST_RATE),
                                   value=preset.get("interest_rate", 7.0), step=0.25,
                                   key="apply_rate")
        with la_col2:
            months = st.number_input("Duration (months)", min_value=MIN_DURATION_MONTHS,
                                     max_value=MAX_DURATION_MONTHS,
                                     value=preset.get("duration_months", 12), step=1,
                                     key="apply_months")
            purpose = st.text_input("Purpose", placeholder="e.g. Seeds and fertilizer", key="apply_purpose")

        preview_emi = AmortizationCalculator.emi(to_decimal(amount), to_decimal(rate), int(months))
        st.info(f"Estimated Monthly EMI: **{format_currency(preview_emi)}**")
        submitted = st.form_submit_button("Submit Application", use_container_width=True)

    if submitted:
        try:
            result = loan_svc.apply_loan(
                farmer_id, to_decimal(amount), to_decimal(rate), int(months),
                loan_purpose=purpose,
                lender_name=preset.get("lender_name"),
                lender_type=preset.get("lender_type"),
            )
            st.session_state.pop("selected_offer", None)
            st.success(f"{result['message']}. Loan ID: **{result['loan_id']}**")
            m1, m2, m3 = st.columns(3)
            m1.metric("Monthly EMI", format_currency(result["emi_amount"]))
            m2.metric("Total Payable", format_currency(result["total_payable"]))
            m3.metric("Processing Fee", format_currency(result["processing_fee"]))
        except Exception as e:
            show_error(e)

# -----------------------------------------------------------------------
# TAB 2 - Loans
# -----------------------------------------------------------------------
with tab_loans:
    try:
        history = loan_svc.get_loan_history(farmer_id)
    except Exception as e:
        show_error(e)
        history = None

    if history:
        summary = history["summary"]
        s1, s2, s3, s4 = st.columns(4)
        s1.metric("Loans", summary["total_loans"])
        s2.metric("Active", summary["active_loans"])
        s3.metric("Repaid", format_currency(summary["total_repaid"]))
        s4.metric("Outstanding", format_currency(summary["total_outstanding"]))

        if not history["loans"]:
            st.info("No loans yet.")

        for loan in history["loans"]:
            lid = loan["loan_id"]
            with st.expander(f"{lid} - {format_currency(loan['approved_amount'] or loan['loan_amount'])} "
                             f"- {status_badge(loan['loan_status'])}"):
                m1, m2, m3 = st.columns(3)
                m1.metric("EMI", format_currency(loan["emi_amount"]))
                m2.metric("Repaid", format_currency(loan["amount_repaid"]))
                m3.metric("Outstanding", format_currency(loan["outstanding_amount"]))
                st.markdown(f"**Rate:** {loan['interest_rate']}% p.a. &nbsp;|&nbsp; "
                            f"**Applied:** {format_date(loan['application_date'])} &nbsp;|&nbsp; "
                            f"**Due:** {format_date(loan['repayment_due_date'])}")
                if loan["rejection_reason"]:
                    st.warning(f"Rejected: {loan['rejection_reason']}")

                if loan["loan_status"] in ("approved", "disbursed"):
                    with st.form(f"repay_form_{lid}"):
                        pay_amount = st.number_input("Repayment Amount (INR)", min_value=1.0,
                                                     value=float(loan["emi_amount"]), step=100.0,
                                                     format="%.2f", key=f"repay_amount_{lid}")
                        method = st.selectbox("Method", ["Online", "UPI", "Cash", "Bank Transfer"],
                                              key=f"repay_method_{lid}")
                        pay = st.form_submit_button("Repay")
                    if pay:
                        try:
                            result = loan_svc.repay_loan(lid, to_decimal(pay_amount), method,
                                                         paid_by=farmer_id)
                            st.success(f"{result['message']} - outstanding "
                                       f"{format_currency(result['outstanding_amount'])}")
                        except Exception as e:
                            show_error(e)

                if st.button("Repayment History", key=f"status_{lid}"):
                    try:
                        status = loan_svc.get_loan_status(lid)
                        if status["repayment_history"]:
                            st.dataframe(pd.DataFrame(status["repayment_history"]),
                                         use_container_width=True, hide_index=True)
                        else:
                            st.caption("No repayments recorded.")
                    except Exception as e:
                        show_error(e)

# -----------------------------------------------------------------------
# TAB 3 - Schedule
# -----------------------------------------------------------------------
with tab_schedule:
    loan_id = st.text_input("Loan ID", key="schedule_loan_id")
    if loan_id and st.button("Show Schedule", key="show_schedule"):
        try:
            schedule = loan_svc.get_repayment_schedule(loan_id.strip())
            m1, m2, m3 = st.columns(3)
            m1.metric("EMI", format_currency(schedule["emi_amount"]))
            m2.metric("Total Payable", format_currency(schedule["total_payable"]))
            m3.metric("Total Interest", format_currency(schedule["total_interest"]))
            df = pd.DataFrame([vars(i) for i in schedule["installments"]])
            st.dataframe(df, use_container_width=True, hide_index=True)
        except Exception as e:
            show_error(e)
