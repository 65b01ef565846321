"""
Farm Validation Service — per-farm vegetation and weather reports.
"""
from typing import Dict, Any

from core.models.entities import Farm
from core.repositories.farm_repository import FarmRepository
from core.repositories.crop_repository import CropRepository
from core.services.vegetation_service import (
    VegetationHealthEvaluator, MockSatelliteEvaluator, vegetation_advice,
)
from core.services.weather_service import WeatherRiskEvaluator, MockWeatherEvaluator, weather_advice
from utils.exceptions import FarmNotFoundException, ValidationException
from utils.helpers import LoggingUtils


class FarmValidationService:
    def __init__(self, farm_repo: FarmRepository = None, crop_repo: CropRepository = None,
                 vegetation: VegetationHealthEvaluator = None,
                 weather: WeatherRiskEvaluator = None):
        self.farm_repo = farm_repo or FarmRepository()
        self.crop_repo = crop_repo or CropRepository()
        self.vegetation = vegetation or MockSatelliteEvaluator()
        self.weather = weather or MockWeatherEvaluator()

    def _get_farm(self, farm_id: str) -> Farm:
        farm = self.farm_repo.find_farm_by_id(farm_id)
        if not farm:
            raise FarmNotFoundException(f"No farm found with ID: {farm_id}")
        return farm

    def vegetation_report(self, farm_id: str) -> Dict[str, Any]:
        """Vegetation index of a geolocated farm against its latest growing crop"""
        farm = self._get_farm(farm_id)
        if not farm.has_gps:
            raise ValidationException(
                f"Farm {farm_id} has no GPS coordinates; add them to enable satellite validation"
            )

        crop = self.crop_repo.find_latest_growing(farm_id)
        reading = self.vegetation.evaluate(farm, crop)

        LoggingUtils.log_business_event(
            "vegetation_validated", "farm", farm_id,
            details={'index': reading.index, 'health_band': reading.health_band}
        )

        return {
            'farm_id': farm_id,
            'crop_id': crop.crop_id if crop else None,
            'crop_type': crop.crop_type if crop else None,
            'vegetation_index': reading.index,
            'health_status': reading.health_band,
            'confidence': reading.confidence.value,
            'data_source': reading.data_source,
            'recommendations': vegetation_advice(reading.index),
        }

    def weather_report(self, farm_id: str) -> Dict[str, Any]:
        farm = self._get_farm(farm_id)
        crop = self.crop_repo.find_latest_growing(farm_id)
        reading = self.weather.evaluate(farm, crop)

        return {
            'farm_id': farm_id,
            'location': {'state': farm.state, 'district': farm.district, 'village': farm.village},
            'season': reading.season,
            'rainfall_mm': reading.rainfall_mm,
            'temperature_celsius': reading.temperature_celsius,
            'conditions': reading.conditions,
            'drought_risk': reading.drought_risk,
            'irrigation_type': farm.irrigation_type,
            'data_source': reading.data_source,
            'recommendations': weather_advice(reading),
        }
