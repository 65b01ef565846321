import streamlit as st

st.set_page_config(
    page_title="Agri-Trust Credit Engine",
    page_icon="🌾",
    layout="wide",
)

from utils.sidebar import render_sidebar, show_error
from db.database import db_manager, apply_schema


# --- PAGE DEFINITIONS ---
def home_page():
    render_sidebar()

    col_left, col_center, col_right = st.columns([1, 2, 1])
    with col_center:
        st.markdown(
            """
            <div style="text-align:center">
                <h1 style="color:#1E6B3A">🌾 Agri-Trust</h1>
                <p style="color:#5D6D7E; font-size:1.1rem">Farm records in, fair credit out</p>
            </div>
            """,
            unsafe_allow_html=True,
        )
        st.markdown("---")
        st.markdown(
            "Enter a **Farmer ID** in the sidebar to compute a trust score, browse loan "
            "offers and manage loans. Enter a **Lending Institution ID** to work the lender desk."
        )
        st.markdown("---")
        if db_manager.db_config.test_connection():
            st.caption("Database: connected")
            if st.button("Create missing tables"):
                try:
                    count = apply_schema()
                    st.success(f"Schema up to date ({count} statements applied)")
                except Exception as e:
                    show_error(e)
        else:
            st.warning("Database unavailable. Check the DB_HOST, DB_NAME and DB_USER settings.")
        st.caption("Scores and offers are indicative and subject to lender approval.")


# --- NAVIGATION SETUP ---
pg = st.navigation({
    "Main": [
        st.Page(home_page, title="Home", default=True),
    ],
    "Farmer": [
        st.Page("pages/1_Trust_Score.py", title="Trust Score"),
        st.Page("pages/2_Loan_Offers.py", title="Loan Offers"),
        st.Page("pages/3_My_Loans.py", title="My Loans"),
        st.Page("pages/5_Farm_Records.py", title="Farm Records"),
    ],
    "Lender": [
        st.Page("pages/4_Lender_Desk.py", title="Lender Desk"),
    ],
})
pg.run()
