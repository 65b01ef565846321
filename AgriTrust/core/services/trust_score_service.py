"""
Trust Score Service — composes the Agri-Trust score (0-100) and risk tier.

Score formula:
  - Farm fundamentals: 30
  - Crop health (vegetation index): 30
  - Historical performance: 25
  - Farmer behavior: 15

Sub-scores stay unrounded; only the total is rounded (half up).
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Any, List, Sequence

from core.models.entities import (
    Farmer, Farm, Crop, CropStatus, FarmerSnapshot, IrrigationType,
    RiskLevel, ScoreBreakdown, ScoreResult,
)
from core.repositories.farmer_repository import FarmerRepository
from core.services.record_service import FarmRecordService
from core.services.vegetation_service import VegetationHealthEvaluator, MockSatelliteEvaluator
from utils.exceptions import FarmerNotFoundException, UpstreamUnavailableException
from utils.helpers import NumberUtils, DateUtils, LoggingUtils

logger = logging.getLogger(__name__)

# ─── Score Bounds ─────────────────────────────────────────────────────────────
MAX_FARM_DATA = 30
MAX_CROP_HEALTH = 30
MAX_HISTORICAL = 25
MAX_BEHAVIOR = 15

# Used when no crop could be evaluated; zero farms still score 0 on farm data
DEFAULT_CROP_HEALTH = 15
NEW_FARMER_HISTORICAL = 15
DEFAULT_YIELD_POINTS = 3

# (minimum vegetation index, points per crop), best first
VEGETATION_POINTS = [(0.7, 10), (0.5, 8), (0.3, 5), (0.2, 3)]
MIN_VEGETATION_POINTS = 1

# (minimum score, tier), best first
RISK_TIERS = [
    (75, RiskLevel.LOW),
    (50, RiskLevel.MEDIUM),
    (25, RiskLevel.HIGH),
]

VERIFIED_STATUSES = ("verified", "mock_verified")

FACTORS = {
    'farm_data': (MAX_FARM_DATA, 'Farm registration, GPS verification, land ownership'),
    'crop_health': (MAX_CROP_HEALTH, 'Vegetation-index crop health monitoring'),
    'historical_performance': (MAX_HISTORICAL, 'Crop diversity, yield achievement, farming experience'),
    'farmer_behavior': (MAX_BEHAVIOR, 'Profile completion, verification status'),
}


def determine_risk_level(score: int) -> RiskLevel:
    for threshold, tier in RISK_TIERS:
        if score >= threshold:
            return tier
    return RiskLevel.VERY_HIGH


def vegetation_points(index: float) -> int:
    for threshold, points in VEGETATION_POINTS:
        if index >= threshold:
            return points
    return MIN_VEGETATION_POINTS


class TrustScoreService:
    def __init__(self, record_service: FarmRecordService = None,
                 farmer_repo: FarmerRepository = None,
                 vegetation: VegetationHealthEvaluator = None,
                 clock: Callable[[], datetime] = None):
        self.farmer_repo = farmer_repo or FarmerRepository()
        self.record_service = record_service or FarmRecordService(farmer_repo=self.farmer_repo)
        self.vegetation = vegetation or MockSatelliteEvaluator()
        self.clock = clock or datetime.now

    # ── Farm Fundamentals (0-30) ───────────────────────────────────────────────
    def calculate_farm_data_score(self, farms: Sequence[Farm]) -> float:
        if not farms:
            return 0.0

        count = len(farms)
        score = 10.0

        score += sum(1 for f in farms if f.has_gps) / count * 5
        score += sum(1 for f in farms if f.is_profile_complete) / count * 5

        avg_land = sum(float(f.land_size_acres or 0) for f in farms) / count
        if avg_land >= 5:
            score += 5
        elif avg_land >= 2:
            score += 3
        elif avg_land >= 1:
            score += 1

        irrigated = sum(1 for f in farms
                        if f.irrigation_type and f.irrigation_type != IrrigationType.RAINFED.value)
        score += irrigated / count * 5

        return min(float(MAX_FARM_DATA), score)

    # ── Crop Health (0-30) ─────────────────────────────────────────────────────
    def calculate_crop_health_score(self, snapshot: FarmerSnapshot) -> float:
        total_points = 0
        evaluated = 0

        for crop in snapshot.crops:
            farm = snapshot.farm_for(crop)
            if not farm or not farm.has_gps:
                continue

            try:
                reading = self.vegetation.evaluate(farm, crop)
            except UpstreamUnavailableException as e:
                logger.warning(f"Vegetation index unavailable for crop {crop.crop_id}: {e.message}")
                continue

            total_points += vegetation_points(reading.index)
            evaluated += 1

        if evaluated == 0:
            return float(DEFAULT_CROP_HEALTH)

        return (total_points / evaluated) / 10 * MAX_CROP_HEALTH

    # ── Historical Performance (0-25) ──────────────────────────────────────────
    def calculate_historical_score(self, crops: Sequence[Crop], farmer: Farmer) -> float:
        if not crops:
            # New farmer - benefit of the doubt
            return float(NEW_FARMER_HISTORICAL)

        score = 0.0

        distinct_types = len({c.crop_type for c in crops})
        if distinct_types >= 3:
            score += 5
        elif distinct_types >= 2:
            score += 3
        else:
            score += 1

        harvested = sum(1 for c in crops if c.crop_status == CropStatus.HARVESTED)
        score += harvested / len(crops) * 10

        with_yield = [c for c in crops if c.actual_yield_qtl and c.expected_yield_qtl]
        if with_yield:
            achievement = sum(float(c.actual_yield_qtl) / float(c.expected_yield_qtl)
                              for c in with_yield) / len(with_yield)
            if achievement >= 1.0:
                score += 5
            elif achievement >= 0.8:
                score += 4
            elif achievement >= 0.6:
                score += 2
        else:
            score += DEFAULT_YIELD_POINTS

        years = DateUtils.years_between(farmer.created_at, self.clock()) if farmer.created_at else 0
        if years >= 2:
            score += 5
        elif years >= 1:
            score += 3
        else:
            score += 1

        return min(float(MAX_HISTORICAL), score)

    # ── Farmer Behavior (0-15) ─────────────────────────────────────────────────
    def calculate_behavior_score(self, farmer: Farmer) -> float:
        completion = max(0, min(100, farmer.profile_completion or 0))
        score = completion / 100 * 5
        score += 5 if farmer.aadhaar_verified else 2
        score += 5 if farmer.verification_status in VERIFIED_STATUSES else 2
        return min(float(MAX_BEHAVIOR), score)

    # ── Public Operations ──────────────────────────────────────────────────────
    def compute_score(self, farmer_id: str) -> ScoreResult:
        """Recompute from a fresh snapshot and persist score + tier onto the farmer"""
        snapshot = self.record_service.load_snapshot(farmer_id)
        farmer = snapshot.farmer

        breakdown = ScoreBreakdown(
            farm_data=self.calculate_farm_data_score(snapshot.farms),
            crop_health=self.calculate_crop_health_score(snapshot),
            historical=self.calculate_historical_score(snapshot.crops, farmer),
            behavior=self.calculate_behavior_score(farmer),
        )
        total = NumberUtils.round_score(breakdown.raw_total)
        risk_level = determine_risk_level(total)
        calculated_at = self.clock()

        self.farmer_repo.update_trust_score(farmer_id, total, risk_level.value, calculated_at)

        LoggingUtils.log_business_event(
            "trust_score_calculated", "farmer", farmer_id,
            details={'trust_score': total, 'risk_level': risk_level.value}
        )

        return ScoreResult(
            farmer_id=farmer_id,
            farmer_name=farmer.full_name,
            trust_score=total,
            risk_level=risk_level,
            breakdown=breakdown,
            recommendations=self.generate_recommendations(breakdown, total),
            statistics=self._statistics(snapshot),
            calculated_at=calculated_at,
        )

    def get_score(self, farmer_id: str) -> Dict[str, Any]:
        """Last persisted score; never recomputes"""
        farmer = self.farmer_repo.find_farmer(farmer_id)
        if not farmer:
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        return {
            'farmer_id': farmer_id,
            'farmer_name': farmer.full_name,
            'trust_score': farmer.trust_score or 0,
            'risk_level': farmer.risk_level or 'Not Calculated',
            'last_updated': farmer.updated_at,
            'note': 'Use compute_score to refresh the score'
        }

    @staticmethod
    def factor_summary(breakdown: ScoreBreakdown) -> Dict[str, Dict[str, Any]]:
        """Per-factor display rows; rounding here is presentation only"""
        values = {
            'farm_data': breakdown.farm_data,
            'crop_health': breakdown.crop_health,
            'historical_performance': breakdown.historical,
            'farmer_behavior': breakdown.behavior,
        }
        return {
            name: {
                'score': NumberUtils.round_score(values[name]),
                'max_score': max_score,
                'weight': f"{max_score}%",
                'description': description,
            }
            for name, (max_score, description) in FACTORS.items()
        }

    @staticmethod
    def generate_recommendations(breakdown: ScoreBreakdown, total: int) -> List[str]:
        tips = []
        if NumberUtils.round_score(breakdown.farm_data) < 20:
            tips.append("Add GPS coordinates to all farms for better verification")
            tips.append("Complete farm details (soil type, irrigation type)")
        if NumberUtils.round_score(breakdown.crop_health) < 20:
            tips.append("Improve crop health through better irrigation and fertilization")
            tips.append("Monitor crop health regularly using satellite data")
        if NumberUtils.round_score(breakdown.historical) < 15:
            tips.append("Build farming history by recording all crops and harvests")
            tips.append("Try to meet or exceed expected yield targets")
        if NumberUtils.round_score(breakdown.behavior) < 10:
            tips.append("Complete your profile information")
            tips.append("Verify your Aadhaar for a better trust score")

        if total >= 75:
            tips.append("Excellent trust score! You qualify for premium loan offers")
        elif total >= 50:
            tips.append("Good trust score! Keep maintaining your farming records")
        else:
            tips.append("Keep improving your score to access better loan terms")
        return tips

    @staticmethod
    def _statistics(snapshot: FarmerSnapshot) -> Dict[str, int]:
        return {
            'total_farms': len(snapshot.farms),
            'total_crops': len(snapshot.crops),
            'active_crops': sum(1 for c in snapshot.crops if c.crop_status == CropStatus.GROWING),
            'harvested_crops': sum(1 for c in snapshot.crops if c.crop_status == CropStatus.HARVESTED),
        }
