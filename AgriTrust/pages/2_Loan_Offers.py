"""
Loan Offers Page - ranked offers from the farmer's last computed trust score.
"""

import streamlit as st

from utils.sidebar import render_sidebar, current_farmer_id, show_error
from utils.formatters import format_currency, risk_badge
from core.services.loan_offer_service import LoanOfferService

render_sidebar()

st.title("Loan Offers")
st.markdown("---")

farmer_id = current_farmer_id()
if not farmer_id:
    st.info("Enter a Farmer ID in the sidebar to continue.")
    st.stop()

try:
    offer_set = LoanOfferService().generate_offers(farmer_id)
except Exception as e:
    show_error(e)
    st.stop()

c1, c2, c3 = st.columns(3)
c1.metric("Trust Score", offer_set.trust_score)
c2.metric("Risk Level", risk_badge(offer_set.risk_level))
c3.metric("Total Land", f"{offer_set.total_land_acres} acres")

if not offer_set.offers:
    st.warning(offer_set.message)
    for tip in offer_set.improvement_tips:
        st.markdown(f"- {tip}")
    st.stop()

st.caption(f"{offer_set.eligible_offers} eligible offer(s) - {offer_set.note}")

for offer in offer_set.offers:
    title = f"{offer.lender_name} ({offer.lender_type}) - {offer.interest_rate}% p.a."
    if offer.recommended:
        title = f"⭐ {title}"
    with st.expander(title, expanded=offer.recommended):
        m1, m2, m3 = st.columns(3)
        m1.metric("Up to", format_currency(offer.loan_amount_max))
        m2.metric("Tenure", f"{offer.duration_months} months")
        m3.metric("EMI per ₹1 lakh", format_currency(offer.emi_per_lakh))
        st.markdown(f"**Minimum:** {format_currency(offer.loan_amount_min)} &nbsp;|&nbsp; "
                    f"**Processing fee:** {offer.processing_fee_percent}% &nbsp;|&nbsp; "
                    f"**Collateral:** {offer.collateral_required}")
        for feature in offer.features:
            st.markdown(f"- {feature}")
        st.caption(offer.eligibility)

        if st.button("Use these terms", key=f"use_{offer.offer_id}"):
            st.session_state["selected_offer"] = {
                "lender_name": offer.lender_name,
                "lender_type": offer.lender_type,
                "interest_rate": float(offer.interest_rate),
                "duration_months": offer.duration_months,
            }
            st.success("Terms copied. Open My Loans to apply.")
