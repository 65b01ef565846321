"""
Weather Risk Evaluator — rainfall, temperature and drought risk per farm/crop.
"""
import random
from abc import ABC, abstractmethod
from typing import Optional, List

from core.models.entities import Farm, Crop, Season, IrrigationType, WeatherReading

HIGH_RAINFALL_STATES = ("Kerala", "Maharashtra", "West Bengal", "Assam")
MODERATE_RAINFALL_STATES = ("Bihar", "Uttar Pradesh", "Madhya Pradesh")
NORTHERN_STATES = ("Punjab", "Haryana", "Himachal Pradesh", "Uttarakhand")
SOUTHERN_STATES = ("Tamil Nadu", "Kerala", "Karnataka", "Andhra Pradesh")
ASSURED_IRRIGATION = (IrrigationType.CANAL.value, IrrigationType.TUBEWELL.value)


def drought_risk(rainfall_mm: float, season: str, irrigation_type: Optional[str]) -> str:
    """Low whenever irrigation is assured; otherwise by season-specific rainfall thresholds"""
    if irrigation_type in ASSURED_IRRIGATION:
        return "Low"

    high, medium = (50, 100) if season == Season.KHARIF.value else (30, 60)
    if rainfall_mm < high:
        return "High"
    if rainfall_mm < medium:
        return "Medium"
    return "Low"


def weather_advice(reading: WeatherReading) -> List[str]:
    advice = []
    if reading.drought_risk == "High":
        advice += ["High drought risk - ensure adequate irrigation",
                   "Consider drought-resistant crop varieties"]
    elif reading.drought_risk == "Medium":
        advice += ["Moderate drought risk - monitor water supply",
                   "Plan irrigation schedule carefully"]
    else:
        advice.append("Low drought risk - normal farming practices")

    if reading.temperature_celsius > 35:
        advice.append("High temperature - protect crops from heat stress")
    if reading.rainfall_mm > 200:
        advice.append("Heavy rainfall expected - ensure drainage")
    if reading.season == Season.KHARIF.value and reading.rainfall_mm < 80:
        advice.append("Below-average monsoon rainfall - supplement with irrigation")
    return advice


class WeatherRiskEvaluator(ABC):

    @abstractmethod
    def evaluate(self, farm: Farm, crop: Optional[Crop] = None) -> WeatherReading:
        """Raises UpstreamUnavailableException when the provider cannot answer"""


class MockWeatherEvaluator(WeatherRiskEvaluator):
    """Regional and seasonal heuristic with a random jitter"""

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def _rainfall(self, state: Optional[str], season: str) -> int:
        if state in HIGH_RAINFALL_STATES:
            rainfall = 150.0
        elif state in MODERATE_RAINFALL_STATES:
            rainfall = 80.0
        else:
            rainfall = 60.0

        if season == Season.KHARIF.value:
            rainfall *= 1.5
        elif season == Season.RABI.value:
            rainfall *= 0.4

        rainfall *= (self.rng.random() - 0.5) * 0.4 + 1
        return round(rainfall)

    def _temperature(self, state: Optional[str], season: str) -> float:
        if season == Season.RABI.value:
            temperature = 18.0
        elif season == Season.KHARIF.value:
            temperature = 30.0
        elif season in (Season.SUMMER.value, Season.ZAID.value):
            temperature = 38.0
        else:
            temperature = 28.0

        if state in NORTHERN_STATES:
            temperature -= 3
        elif state in SOUTHERN_STATES:
            temperature += 2

        temperature += (self.rng.random() - 0.5) * 4
        return round(temperature, 1)

    def evaluate(self, farm: Farm, crop: Optional[Crop] = None) -> WeatherReading:
        season = crop.season if crop and crop.season else Season.RABI.value
        rainfall = self._rainfall(farm.state, season)
        return WeatherReading(
            rainfall_mm=rainfall,
            temperature_celsius=self._temperature(farm.state, season),
            drought_risk=drought_risk(rainfall, season, farm.irrigation_type),
            conditions="Rainy" if rainfall > 50 else "Clear",
            season=season,
            data_source="Mock Weather Service",
        )
