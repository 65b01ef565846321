"""
Shared sidebar renderer for all dashboard pages.
The acting farmer or lending institution is picked here and kept in session state.
"""

import streamlit as st

from utils.exceptions import error_payload


def render_sidebar():
    """Render the common sidebar on every page."""
    with st.sidebar:
        st.markdown("## 🌾 Agri-Trust")
        st.markdown("---")

        st.text_input("Farmer ID", key="farmer_id", placeholder="e.g. FRM1001")
        st.text_input("Lending Institution ID", key="bank_id", placeholder="e.g. BANK01")

        st.markdown("---")
        st.caption("No sign-in: the IDs above select who is acting.")


def current_farmer_id() -> str:
    return (st.session_state.get("farmer_id") or "").strip()


def current_bank_id() -> str:
    return (st.session_state.get("bank_id") or "").strip()


def show_error(exc: Exception):
    """Render a service failure as kind + message, never internal detail."""
    payload = error_payload(exc)
    st.error(f"{payload['kind']}: {payload['message']}")
