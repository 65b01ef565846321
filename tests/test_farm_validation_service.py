"""Tests for farm validation reports and the vegetation/weather evaluators."""

import random
from datetime import date
from decimal import Decimal

import pytest

from core.models.entities import Farm, Crop, Confidence, WeatherReading
from core.services.farm_validation_service import FarmValidationService
from core.services.vegetation_service import (
    MockSatelliteEvaluator, health_band, confidence_level, vegetation_advice,
)
from core.services.weather_service import MockWeatherEvaluator, drought_risk, weather_advice
from utils.exceptions import FarmNotFoundException, ValidationException

from conftest import FakeFarmRepository, FakeCropRepository, StubVegetation


@pytest.fixture
def validation_service(irrigated_farm):
    rainfed = Farm(farm_id="FARM1002", farmer_id="FRM1001", land_size_acres=Decimal("3"),
                   irrigation_type="Rainfed", state="Bihar")
    crops = [
        Crop(crop_id="CROP1", farm_id="FARM1001", crop_type="Soybean", season="Kharif",
             sowing_date=date(2025, 6, 20)),
        Crop(crop_id="CROP2", farm_id="FARM1001", crop_type="Wheat", season="Rabi",
             sowing_date=date(2025, 11, 5)),
    ]
    return FarmValidationService(farm_repo=FakeFarmRepository([irrigated_farm, rainfed]),
                                 crop_repo=FakeCropRepository(crops),
                                 vegetation=StubVegetation(index=0.62),
                                 weather=MockWeatherEvaluator(random.Random(7)))


class TestVegetationReport:

    def test_uses_latest_growing_crop(self, validation_service):
        report = validation_service.vegetation_report("FARM1001")
        assert report['crop_id'] == "CROP2"
        assert report['vegetation_index'] == 0.62
        assert report['health_status'] == "Healthy"
        assert report['recommendations'][0] == "Crop health is good"

    def test_requires_gps(self, validation_service):
        with pytest.raises(ValidationException):
            validation_service.vegetation_report("FARM1002")

    def test_unknown_farm(self, validation_service):
        with pytest.raises(FarmNotFoundException):
            validation_service.vegetation_report("FARM404")


class TestWeatherReport:

    def test_assured_irrigation_is_low_risk(self, validation_service):
        report = validation_service.weather_report("FARM1001")
        assert report['drought_risk'] == "Low"
        assert report['season'] == "Rabi"
        assert report['recommendations']

    def test_farm_without_crops_defaults_to_rabi(self, validation_service):
        report = validation_service.weather_report("FARM1002")
        assert report['season'] == "Rabi"
        assert report['location']['state'] == "Bihar"

    def test_unknown_farm(self, validation_service):
        with pytest.raises(FarmNotFoundException):
            validation_service.weather_report("FARM404")


class TestDroughtRules:

    @pytest.mark.parametrize("rainfall,season,irrigation,risk", [
        (10, "Kharif", "Canal", "Low"),
        (10, "Rabi", "Tubewell", "Low"),
        (49, "Kharif", "Rainfed", "High"),
        (50, "Kharif", "Rainfed", "Medium"),
        (99, "Kharif", "Drip", "Medium"),
        (100, "Kharif", None, "Low"),
        (29, "Rabi", "Rainfed", "High"),
        (30, "Rabi", "Rainfed", "Medium"),
        (60, "Zaid", "Sprinkler", "Low"),
    ])
    def test_thresholds(self, rainfall, season, irrigation, risk):
        assert drought_risk(rainfall, season, irrigation) == risk

    def test_advice_flags_heat_and_weak_monsoon(self):
        advice = weather_advice(WeatherReading(rainfall_mm=40, temperature_celsius=37.5,
                                               drought_risk="High", season="Kharif"))
        assert "High drought risk - ensure adequate irrigation" in advice
        assert "High temperature - protect crops from heat stress" in advice
        assert "Below-average monsoon rainfall - supplement with irrigation" in advice


class TestVegetationEvaluator:

    @pytest.mark.parametrize("index,band", [
        (0.7, "Excellent"), (0.5, "Healthy"), (0.3, "Moderate"), (0.2, "Poor"), (0.1, "Critical"),
    ])
    def test_bands(self, index, band):
        assert health_band(index) == band

    def test_confidence_levels(self, irrigated_farm):
        crop = Crop(crop_id="C1", farm_id="FARM1001", crop_type="Rice", season="Kharif")
        bare = Farm(farm_id="F2", farmer_id="FRM1")
        assert confidence_level(irrigated_farm, crop) == Confidence.HIGH
        assert confidence_level(irrigated_farm, None) == Confidence.MEDIUM
        assert confidence_level(bare, None) == Confidence.LOW

    def test_mock_is_seedable_and_bounded(self, irrigated_farm):
        crop = Crop(crop_id="C1", farm_id="FARM1001", crop_type="Rice", season="Kharif")
        first = MockSatelliteEvaluator(random.Random(3)).evaluate(irrigated_farm, crop)
        second = MockSatelliteEvaluator(random.Random(3)).evaluate(irrigated_farm, crop)

        assert first == second
        # 0.65 + 0.05 + 0.1 + 0.05 with a +/-0.1 jitter
        assert 0.75 <= first.index <= 0.95

    def test_concerning_advice(self):
        assert vegetation_advice(0.1)[0] == "Crop health is concerning"
