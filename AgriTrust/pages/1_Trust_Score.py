"""
Trust Score Page - compute and review a farmer's Agri-Trust score.
Also runs per-farm satellite and weather validation.
"""

import streamlit as st
import pandas as pd

from utils.sidebar import render_sidebar, current_farmer_id, show_error
from utils.formatters import format_date, risk_badge
from core.services.trust_score_service import TrustScoreService
from core.services.farm_validation_service import FarmValidationService
from core.repositories.farm_repository import FarmRepository

render_sidebar()

st.title("Trust Score")
st.markdown("---")

farmer_id = current_farmer_id()
if not farmer_id:
    st.info("Enter a Farmer ID in the sidebar to continue.")
    st.stop()

score_svc = TrustScoreService()

tab_score, tab_validate = st.tabs(["Score", "Farm Validation"])

# -----------------------------------------------------------------------
# TAB 1 - Score
# -----------------------------------------------------------------------
with tab_score:
    try:
        current = score_svc.get_score(farmer_id)
        c1, c2, c3 = st.columns(3)
        c1.metric("Current Score", current["trust_score"])
        c2.metric("Risk Level", current["risk_level"])
        c3.metric("Last Updated", format_date(current["last_updated"]))
    except Exception as e:
        show_error(e)
        st.stop()

    if st.button("Recalculate Score", use_container_width=True, key="recalc_score"):
        try:
            with st.spinner("Evaluating farms and crops..."):
                result = score_svc.compute_score(farmer_id)
            st.session_state["last_score_result"] = result
        except Exception as e:
            show_error(e)

    result = st.session_state.get("last_score_result")
    if result and result.farmer_id == farmer_id:
        st.success(f"Trust score **{result.trust_score}/100** - {risk_badge(result.risk_level.value)}")
        st.progress(result.trust_score / 100)

        rows = [
            {"Factor": name.replace("_", " ").title(), "Score": f["score"],
             "Max": f["max_score"], "Description": f["description"]}
            for name, f in TrustScoreService.factor_summary(result.breakdown).items()
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        s1, s2, s3, s4 = st.columns(4)
        s1.metric("Farms", result.statistics["total_farms"])
        s2.metric("Crops", result.statistics["total_crops"])
        s3.metric("Growing", result.statistics["active_crops"])
        s4.metric("Harvested", result.statistics["harvested_crops"])

        st.subheader("Recommendations")
        for tip in result.recommendations:
            st.markdown(f"- {tip}")
        st.caption(f"Calculated {format_date(result.calculated_at)} - valid for {result.validity}")

# -----------------------------------------------------------------------
# TAB 2 - Farm Validation
# -----------------------------------------------------------------------
with tab_validate:
    try:
        farms = FarmRepository().find_by_farmer(farmer_id)
    except Exception as e:
        show_error(e)
        farms = []

    if not farms:
        st.info("No farms registered for this farmer.")
    else:
        farm_options = {f"{f.farm_id} - {f.village or f.district or 'Farm'} ({f.land_size_acres} acres)": f.farm_id
                        for f in farms}
        label = st.selectbox("Farm", list(farm_options.keys()), key="validate_farm")
        farm_id = farm_options[label]
        validation_svc = FarmValidationService()

        v_col, w_col = st.columns(2)
        with v_col:
            if st.button("Satellite Check", use_container_width=True, key="veg_check"):
                try:
                    report = validation_svc.vegetation_report(farm_id)
                    st.metric("Vegetation Index", report["vegetation_index"])
                    st.markdown(f"**Health:** {report['health_status']} &nbsp;|&nbsp; "
                                f"**Confidence:** {report['confidence']}")
                    for tip in report["recommendations"]:
                        st.markdown(f"- {tip}")
                except Exception as e:
                    show_error(e)
        with w_col:
            if st.button("Weather Check", use_container_width=True, key="weather_check"):
                try:
                    report = validation_svc.weather_report(farm_id)
                    m1, m2 = st.columns(2)
                    m1.metric("Rainfall", f"{report['rainfall_mm']} mm")
                    m2.metric("Temperature", f"{report['temperature_celsius']} °C")
                    st.markdown(f"**Drought risk:** {report['drought_risk']} ({report['season']})")
                    for tip in report["recommendations"]:
                        st.markdown(f"- {tip}")
                except Exception as e:
                    show_error(e)
