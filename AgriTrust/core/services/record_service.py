"""
Farm Record Service — loads a farmer with all farms and crops as one snapshot,
and records new farms, sowings and harvest outcomes.
"""
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Any, List, Optional

from core.models.entities import Farm, Crop, CropStatus, FarmerSnapshot, enum_value
from core.repositories.farmer_repository import FarmerRepository
from core.repositories.farm_repository import FarmRepository
from core.repositories.crop_repository import CropRepository
from utils.exceptions import FarmerNotFoundException, FarmNotFoundException, NotFoundException
from utils.helpers import StringUtils, LoggingUtils
from utils.validators import FarmRecordValidator


class FarmRecordService:
    def __init__(self, farmer_repo: FarmerRepository = None, farm_repo: FarmRepository = None,
                 crop_repo: CropRepository = None):
        self.farmer_repo = farmer_repo or FarmerRepository()
        self.farm_repo = farm_repo or FarmRepository()
        self.crop_repo = crop_repo or CropRepository()

    def load_snapshot(self, farmer_id: str) -> FarmerSnapshot:
        """Farmer + farms + crops on those farms. Read-only."""
        farmer = self.farmer_repo.find_farmer(farmer_id)
        if not farmer:
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        farms = self.farm_repo.find_by_farmer(farmer_id)
        crops = self.crop_repo.find_by_farms([f.farm_id for f in farms])

        return FarmerSnapshot(farmer=farmer, farms=tuple(farms), crops=tuple(crops))

    def _get_farm(self, farm_id: str) -> Farm:
        farm = self.farm_repo.find_farm_by_id(farm_id)
        if not farm:
            raise FarmNotFoundException(f"No farm found with ID: {farm_id}")
        return farm

    # ── Farms ──────────────────────────────────────────────────────────────────
    def list_farms(self, farmer_id: str) -> List[Farm]:
        if not self.farmer_repo.find_farmer(farmer_id):
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")
        return self.farm_repo.find_by_farmer(farmer_id)

    def add_farm(self, farmer_id: str, land_size_acres: Decimal, irrigation_type: Optional[str] = None,
                 soil_type: Optional[str] = None, state: Optional[str] = None,
                 district: Optional[str] = None, village: Optional[str] = None,
                 gps_lat: Optional[Decimal] = None, gps_long: Optional[Decimal] = None) -> str:
        """Register a farm for an existing farmer and return its ID"""
        if not self.farmer_repo.find_farmer(farmer_id):
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        farm = Farm(
            farmer_id=farmer_id,
            land_size_acres=land_size_acres,
            gps_lat=gps_lat,
            gps_long=gps_long,
            irrigation_type=irrigation_type or None,
            soil_type=StringUtils.clean_string(soil_type) or None,
            state=StringUtils.clean_string(state) or None,
            district=StringUtils.clean_string(district) or None,
            village=StringUtils.clean_string(village) or None,
        )
        farm_id = self.farm_repo.create_farm(farm)

        LoggingUtils.log_business_event(
            "farm_added", "farm", farm_id, user_id=farmer_id,
            details={'land_size_acres': str(land_size_acres)}
        )
        return farm_id

    # ── Crops ──────────────────────────────────────────────────────────────────
    def list_crops(self, farm_id: str) -> List[Crop]:
        self._get_farm(farm_id)
        return self.crop_repo.find_by_farm(farm_id)

    def add_crop(self, farm_id: str, crop_type: str, season: str, sowing_date: date,
                 expected_harvest_date: Optional[date] = None,
                 area_acres: Optional[Decimal] = None,
                 expected_yield_qtl: Optional[Decimal] = None) -> Dict[str, Any]:
        """Record a new sowing; every crop starts out growing"""
        farm = self._get_farm(farm_id)
        crop = Crop(
            farm_id=farm_id,
            crop_type=StringUtils.clean_string(crop_type),
            season=season,
            sowing_date=sowing_date,
            expected_harvest_date=expected_harvest_date,
            area_acres=area_acres,
            expected_yield_qtl=expected_yield_qtl,
            crop_status=CropStatus.GROWING,
        )
        crop_id = self.crop_repo.create_crop(crop, farm)

        LoggingUtils.log_business_event(
            "crop_added", "crop", crop_id, user_id=farm.farmer_id,
            details={'farm_id': farm_id, 'crop_type': crop.crop_type, 'season': season}
        )

        return {
            'crop_id': crop_id,
            'farm_id': farm_id,
            'crop_type': crop.crop_type,
            'season': season,
            'sowing_date': sowing_date,
            'location': {'state': farm.state, 'district': farm.district},
            'message': "Crop added successfully",
        }

    def update_crop(self, crop_id: str, crop_status: Optional[str] = None,
                    actual_harvest_date: Optional[date] = None,
                    actual_yield_qtl: Optional[Decimal] = None) -> Crop:
        """Record a crop outcome. Fields left as None keep their stored value."""
        current = self.crop_repo.find_crop_by_id(crop_id)
        if not current:
            raise NotFoundException(f"No crop found with ID: {crop_id}")

        if crop_status is not None:
            FarmRecordValidator.validate_crop_status(enum_value(crop_status))

        updated = replace(
            current,
            crop_status=CropStatus(enum_value(crop_status)) if crop_status is not None else current.crop_status,
            actual_harvest_date=actual_harvest_date if actual_harvest_date is not None else current.actual_harvest_date,
            actual_yield_qtl=actual_yield_qtl if actual_yield_qtl is not None else current.actual_yield_qtl,
        )
        FarmRecordValidator.validate_crop(updated, self._get_farm(current.farm_id))
        self.crop_repo.update_crop(updated)

        LoggingUtils.log_business_event(
            "crop_updated", "crop", crop_id,
            details={'crop_status': updated.crop_status.value,
                     'actual_yield_qtl': str(updated.actual_yield_qtl)}
        )
        return updated
