"""
Vegetation Health Evaluator — normalized vegetation index per farm/crop.

The default provider is a mock of satellite imagery; a real provider
(Sentinel Hub, Earth Engine) only has to implement `evaluate`.
"""
import random
from abc import ABC, abstractmethod
from typing import Optional, List

from core.models.entities import Farm, Crop, Confidence, Season, VegetationReading

HIGH_YIELD_CROPS = ("Wheat", "Rice", "Sugarcane")

# (minimum index, band), best first
HEALTH_BANDS = [
    (0.7, "Excellent"),
    (0.5, "Healthy"),
    (0.3, "Moderate"),
    (0.2, "Poor"),
]


def health_band(index: float) -> str:
    for threshold, band in HEALTH_BANDS:
        if index >= threshold:
            return band
    return "Critical"


def confidence_level(farm: Farm, crop: Optional[Crop]) -> Confidence:
    """High with both location and crop data, Medium with one, Low otherwise"""
    has_crop_data = bool(crop and crop.crop_type and crop.season)
    if farm.has_gps and has_crop_data:
        return Confidence.HIGH
    if farm.has_gps or has_crop_data:
        return Confidence.MEDIUM
    return Confidence.LOW


def vegetation_advice(index: float) -> List[str]:
    if index >= 0.7:
        return ["Crop health is excellent",
                "Continue current farming practices",
                "Monitor for any sudden changes"]
    if index >= 0.5:
        return ["Crop health is good",
                "Consider additional irrigation if needed",
                "Monitor nutrient levels"]
    if index >= 0.3:
        return ["Crop health is moderate",
                "Check irrigation and fertilization",
                "Inspect for pests or diseases",
                "Consider expert consultation"]
    return ["Crop health is concerning",
            "Immediate inspection recommended",
            "Check water supply and soil condition",
            "Consult agricultural expert urgently"]


class VegetationHealthEvaluator(ABC):

    @abstractmethod
    def evaluate(self, farm: Farm, crop: Optional[Crop] = None) -> VegetationReading:
        """Index in [-1, 1] with band and confidence.

        Raises UpstreamUnavailableException when the provider cannot answer.
        """


class MockSatelliteEvaluator(VegetationHealthEvaluator):
    """Location/season heuristic with a +/-0.1 jitter"""

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def _index(self, farm: Farm, crop: Optional[Crop]) -> float:
        index = 0.65

        # Good climate band for Indian agriculture
        if farm.gps_lat and 20 <= float(farm.gps_lat) <= 35:
            index += 0.05

        season = crop.season if crop else None
        if season == Season.KHARIF.value:
            index += 0.1
        elif season == Season.RABI.value:
            index += 0.05

        if crop and crop.crop_type in HIGH_YIELD_CROPS:
            index += 0.05

        index += (self.rng.random() - 0.5) * 0.2
        return round(max(-1.0, min(1.0, index)), 3)

    def evaluate(self, farm: Farm, crop: Optional[Crop] = None) -> VegetationReading:
        index = self._index(farm, crop)
        return VegetationReading(
            index=index,
            health_band=health_band(index),
            confidence=confidence_level(farm, crop),
            data_source="Mock Satellite Imagery",
        )
