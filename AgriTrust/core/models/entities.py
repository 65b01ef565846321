"""
Data Models for the Agri-Trust Engine
Dataclasses representing database entities and computed results
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Tuple, Dict, Any
from enum import Enum

# Enums for database constraints
class IrrigationType(Enum):
    RAINFED = 'Rainfed'
    CANAL = 'Canal'
    TUBEWELL = 'Tubewell'
    DRIP = 'Drip'
    SPRINKLER = 'Sprinkler'

class Season(Enum):
    KHARIF = 'Kharif'
    RABI = 'Rabi'
    ZAID = 'Zaid'
    SUMMER = 'Summer'
    WINTER = 'Winter'

class CropStatus(Enum):
    GROWING = 'growing'
    HARVESTED = 'harvested'
    FAILED = 'failed'
    DAMAGED = 'damaged'

class RiskLevel(Enum):
    LOW = 'Low'
    MEDIUM = 'Medium'
    HIGH = 'High'
    VERY_HIGH = 'Very High'

class LoanStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    DISBURSED = 'disbursed'
    REPAID = 'repaid'
    REJECTED = 'rejected'

class Confidence(Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'

@dataclass
class Farmer:
    """Farmer entity"""
    farmer_id: str = ""
    full_name: str = ""
    mobile_number: Optional[str] = None
    aadhaar_verified: bool = False
    verification_status: str = "pending"
    profile_completion: int = 0
    trust_score: Optional[int] = None
    risk_level: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

@dataclass
class Farm:
    """Farm entity"""
    farm_id: str = ""
    farmer_id: str = ""
    land_size_acres: Decimal = Decimal('0.00')
    gps_lat: Optional[Decimal] = None
    gps_long: Optional[Decimal] = None
    irrigation_type: Optional[str] = None
    soil_type: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def has_gps(self) -> bool:
        return bool(self.gps_lat and self.gps_long)

    @property
    def is_profile_complete(self) -> bool:
        return bool(self.irrigation_type and self.soil_type and self.state and self.district)

@dataclass
class Crop:
    """Crop entity"""
    crop_id: str = ""
    farm_id: str = ""
    crop_type: str = ""
    season: str = Season.KHARIF.value
    sowing_date: Optional[date] = None
    expected_harvest_date: Optional[date] = None
    actual_harvest_date: Optional[date] = None
    area_acres: Optional[Decimal] = None
    expected_yield_qtl: Optional[Decimal] = None
    actual_yield_qtl: Optional[Decimal] = None
    crop_status: CropStatus = CropStatus.GROWING
    created_at: Optional[datetime] = None

@dataclass(frozen=True)
class FarmerSnapshot:
    """Farmer with all farms and crops, loaded together for scoring"""
    farmer: Farmer
    farms: Tuple[Farm, ...] = ()
    crops: Tuple[Crop, ...] = ()

    def farm_for(self, crop: Crop) -> Optional[Farm]:
        return next((f for f in self.farms if f.farm_id == crop.farm_id), None)

@dataclass
class Loan:
    """Loan entity"""
    loan_id: str = ""
    farmer_id: str = ""
    bank_id: Optional[str] = None
    loan_amount: Decimal = Decimal('0.00')
    approved_amount: Optional[Decimal] = None
    interest_rate: Decimal = Decimal('0.00')
    loan_duration_months: int = 0
    tenure_seasons: Optional[int] = None
    loan_purpose: Optional[str] = None
    lender_name: Optional[str] = None
    lender_type: Optional[str] = None
    trust_score_at_application: int = 0
    risk_level: Optional[str] = None
    emi_amount: Decimal = Decimal('0')
    outstanding_amount: Decimal = Decimal('0')
    amount_repaid: Decimal = Decimal('0')
    loan_status: LoanStatus = LoanStatus.PENDING
    rejection_reason: Optional[str] = None
    transaction_id: Optional[str] = None
    application_date: Optional[datetime] = None
    approval_date: Optional[datetime] = None
    disbursement_date: Optional[datetime] = None
    repayment_due_date: Optional[date] = None

@dataclass
class Repayment:
    """Repayment ledger entry (append-only)"""
    repayment_id: str = ""
    loan_id: str = ""
    repayment_amount: Decimal = Decimal('0.00')
    payment_method: str = "Online"
    transaction_id: str = ""
    repayment_date: Optional[datetime] = None

@dataclass
class VegetationReading:
    """Vegetation index for a farm/crop pair"""
    index: float = 0.0
    health_band: str = ""
    confidence: Confidence = Confidence.LOW
    data_source: str = ""

@dataclass
class WeatherReading:
    """Weather risk for a farm/crop pair"""
    rainfall_mm: int = 0
    temperature_celsius: float = 0.0
    drought_risk: str = "Low"
    conditions: str = "Clear"
    season: str = Season.RABI.value
    data_source: str = ""

@dataclass
class ScoreBreakdown:
    """Unrounded sub-scores; only the total is rounded"""
    farm_data: float = 0.0
    crop_health: float = 0.0
    historical: float = 0.0
    behavior: float = 0.0

    @property
    def raw_total(self) -> float:
        return self.farm_data + self.crop_health + self.historical + self.behavior

@dataclass
class ScoreResult:
    """Result of a trust score computation"""
    farmer_id: str = ""
    farmer_name: str = ""
    trust_score: int = 0
    risk_level: RiskLevel = RiskLevel.VERY_HIGH
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    recommendations: List[str] = field(default_factory=list)
    statistics: Dict[str, int] = field(default_factory=dict)
    calculated_at: Optional[datetime] = None
    validity: str = "90 days"

@dataclass(frozen=True)
class LoanProduct:
    """One row of the lending product table"""
    offer_id: str
    lender_name: str
    lender_type: str
    min_score: int
    per_acre: Decimal
    absolute_cap: Decimal
    # (minimum score, annual rate) pairs, highest threshold first
    rate_tiers: Tuple[Tuple[int, Decimal], ...]
    duration_months: int
    recommended_range: Tuple[int, Optional[int]]
    loan_amount_min: Decimal = Decimal('0')
    max_score: Optional[int] = None
    processing_fee_percent: Decimal = Decimal('0')
    collateral_required: str = ""
    features: Tuple[str, ...] = ()
    eligibility: str = ""

@dataclass
class LoanOffer:
    """A product the farmer qualifies for"""
    offer_id: str = ""
    lender_name: str = ""
    lender_type: str = ""
    loan_amount_min: Decimal = Decimal('0')
    loan_amount_max: Decimal = Decimal('0')
    interest_rate: Decimal = Decimal('0')
    duration_months: int = 0
    emi_per_lakh: Decimal = Decimal('0')
    processing_fee_percent: Decimal = Decimal('0')
    collateral_required: str = ""
    features: List[str] = field(default_factory=list)
    eligibility: str = ""
    recommended: bool = False

@dataclass
class OfferSet:
    """Ranked offers, or an explanation when none qualify"""
    farmer_id: str = ""
    farmer_name: str = ""
    trust_score: int = 0
    risk_level: str = RiskLevel.HIGH.value
    total_land_acres: Decimal = Decimal('0')
    offers: List[LoanOffer] = field(default_factory=list)
    message: Optional[str] = None
    improvement_tips: List[str] = field(default_factory=list)
    note: str = "Interest rates and loan amounts are indicative and subject to lender approval"

    @property
    def eligible_offers(self) -> int:
        return len(self.offers)

@dataclass
class Installment:
    """One row of an amortization schedule"""
    installment_number: int = 0
    due_date: Optional[date] = None
    emi_amount: Decimal = Decimal('0')
    interest_component: Decimal = Decimal('0.00')
    principal_component: Decimal = Decimal('0.00')
    balance_after: Decimal = Decimal('0.00')
    status: str = "pending"

def enum_value(value: Any) -> Any:
    """Plain value of an enum member (or the value itself)"""
    return value.value if isinstance(value, Enum) else value
