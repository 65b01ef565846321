"""
Farm Records Page - register farms, record sowings and harvest outcomes.
"""

from datetime import date, timedelta

import streamlit as st
import pandas as pd

from utils.sidebar import render_sidebar, current_farmer_id, show_error
from utils.formatters import format_date, to_decimal
from core.models.entities import IrrigationType, Season, CropStatus
from core.services.record_service import FarmRecordService

render_sidebar()

st.title("Farm Records")
st.markdown("---")

farmer_id = current_farmer_id()
if not farmer_id:
    st.info("Enter a Farmer ID in the sidebar to continue.")
    st.stop()

records = FarmRecordService()
tab_farms, tab_crops = st.tabs(["Farms", "Crops"])

try:
    farms = records.list_farms(farmer_id)
except Exception as e:
    show_error(e)
    st.stop()

# -----------------------------------------------------------------------
# TAB 1 - Farms
# -----------------------------------------------------------------------
with tab_farms:
    if farms:
        st.dataframe(pd.DataFrame([{
            "Farm ID": f.farm_id,
            "Land (acres)": str(f.land_size_acres),
            "Irrigation": f.irrigation_type or "-",
            "Soil": f.soil_type or "-",
            "Location": ", ".join(p for p in (f.village, f.district, f.state) if p) or "-",
            "GPS": "Yes" if f.has_gps else "No",
        } for f in farms]), use_container_width=True, hide_index=True)
    else:
        st.info("No farms registered yet.")

    st.subheader("Register a Farm")
    with st.form("add_farm_form"):
        fa_col1, fa_col2 = st.columns(2)
        with fa_col1:
            land = st.number_input("Land Size (acres)", min_value=0.01, value=1.0, step=0.5)
            irrigation = st.selectbox("Irrigation", [i.value for i in IrrigationType])
            soil = st.text_input("Soil Type", placeholder="e.g. Black, Alluvial")
            add_gps = st.checkbox("Add GPS coordinates")
            lat = st.number_input("Latitude", min_value=-90.0, max_value=90.0, value=0.0, format="%.6f")
            lon = st.number_input("Longitude", min_value=-180.0, max_value=180.0, value=0.0, format="%.6f")
        with fa_col2:
            state = st.text_input("State")
            district = st.text_input("District")
            village = st.text_input("Village")
        add_farm = st.form_submit_button("Register Farm", use_container_width=True)

    if add_farm:
        try:
            farm_id = records.add_farm(
                farmer_id, to_decimal(land), irrigation_type=irrigation, soil_type=soil,
                state=state, district=district, village=village,
                gps_lat=to_decimal(lat) if add_gps else None,
                gps_long=to_decimal(lon) if add_gps else None,
            )
            st.success(f"Farm {farm_id} registered")
        except Exception as e:
            show_error(e)

# -----------------------------------------------------------------------
# TAB 2 - Crops
# -----------------------------------------------------------------------
with tab_crops:
    if not farms:
        st.info("Register a farm before recording crops.")
    else:
        farm_id = st.selectbox("Farm", [f.farm_id for f in farms], key="crops_farm")

        try:
            crops = records.list_crops(farm_id)
        except Exception as e:
            show_error(e)
            crops = []

        if crops:
            st.dataframe(pd.DataFrame([{
                "Crop ID": c.crop_id,
                "Crop": c.crop_type,
                "Season": c.season,
                "Sown": format_date(c.sowing_date),
                "Harvested": format_date(c.actual_harvest_date),
                "Area (acres)": str(c.area_acres or "-"),
                "Expected (qtl)": str(c.expected_yield_qtl or "-"),
                "Actual (qtl)": str(c.actual_yield_qtl or "-"),
                "Status": c.crop_status.value.title(),
            } for c in crops]), use_container_width=True, hide_index=True)

        st.subheader("Record a Sowing")
        with st.form("add_crop_form"):
            ac_col1, ac_col2 = st.columns(2)
            with ac_col1:
                crop_type = st.text_input("Crop", placeholder="e.g. Wheat")
                season = st.selectbox("Season", [s.value for s in Season])
                sowing = st.date_input("Sowing Date", value=date.today())
            with ac_col2:
                harvest = st.date_input("Expected Harvest", value=date.today() + timedelta(days=120))
                area = st.number_input("Area (acres, 0 = not recorded)", min_value=0.0, value=0.0, step=0.5)
                expected_yield = st.number_input("Expected Yield (qtl, 0 = not recorded)",
                                                 min_value=0.0, value=0.0, step=1.0)
            add_crop = st.form_submit_button("Add Crop", use_container_width=True)

        if add_crop:
            try:
                result = records.add_crop(
                    farm_id, crop_type, season, sowing, expected_harvest_date=harvest,
                    area_acres=to_decimal(area) if area else None,
                    expected_yield_qtl=to_decimal(expected_yield) if expected_yield else None,
                )
                st.success(f"{result['message']} - {result['crop_id']}")
            except Exception as e:
                show_error(e)

        if crops:
            st.subheader("Record an Outcome")
            with st.form("update_crop_form"):
                crop_id = st.selectbox("Crop", [c.crop_id for c in crops])
                status = st.selectbox("Status", [s.value for s in CropStatus], index=1)
                harvested_on = st.date_input("Actual Harvest Date", value=date.today())
                actual_yield = st.number_input("Actual Yield (qtl)", min_value=0.0, value=0.0, step=0.5)
                update = st.form_submit_button("Save Outcome", use_container_width=True)

            if update:
                try:
                    harvested = status == CropStatus.HARVESTED.value
                    records.update_crop(
                        crop_id, crop_status=status,
                        actual_harvest_date=harvested_on if harvested else None,
                        actual_yield_qtl=to_decimal(actual_yield) if harvested else None,
                    )
                    st.success(f"Crop {crop_id} updated")
                except Exception as e:
                    show_error(e)

st.caption("Recompute your Trust Score after recording a harvest to see it reflected.")
