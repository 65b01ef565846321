"""
Loan Offer Service — maps the persisted trust score and land holding to ranked loan products.
"""
from decimal import Decimal
from typing import List, Optional

from core.models.entities import LoanProduct, LoanOffer, OfferSet, RiskLevel
from core.repositories.farmer_repository import FarmerRepository
from core.repositories.farm_repository import FarmRepository
from core.services.amortization_service import AmortizationCalculator
from utils.exceptions import FarmerNotFoundException
from utils.helpers import LoggingUtils

EMI_REFERENCE_PRINCIPAL = Decimal("100000")   # EMI quoted per ₹1 lakh

# ─── Lending Product Table (increasing institutional size) ────────────────────
LOAN_PRODUCTS = (
    LoanProduct(
        offer_id="KCC-001",
        lender_name="Government Kisan Credit Card",
        lender_type="Government",
        min_score=40,
        per_acre=Decimal("50000"),
        absolute_cap=Decimal("300000"),
        rate_tiers=((0, Decimal("7.0")),),
        duration_months=12,
        recommended_range=(60, None),
        loan_amount_min=Decimal("10000"),
        processing_fee_percent=Decimal("0"),
        collateral_required="Hypothecation of crops",
        features=("Interest subvention benefit",
                  "Prompt repayment incentive (3% reduction)",
                  "Flexible repayment based on harvest",
                  "No processing fee"),
        eligibility="Available for all farmers with land records",
    ),
    LoanProduct(
        offer_id="COOP-001",
        lender_name="District Cooperative Bank",
        lender_type="Cooperative",
        min_score=50,
        per_acre=Decimal("75000"),
        absolute_cap=Decimal("500000"),
        rate_tiers=((70, Decimal("9.5")), (0, Decimal("10.5"))),
        duration_months=24,
        recommended_range=(65, 75),
        loan_amount_min=Decimal("25000"),
        processing_fee_percent=Decimal("0.5"),
        collateral_required="Land papers or FD",
        features=("Lower interest rates for members",
                  "Flexible repayment schedule",
                  "Quick approval process",
                  "Local branch support"),
        eligibility="Membership in cooperative required",
    ),
    LoanProduct(
        offer_id="RRB-001",
        lender_name="Regional Rural Bank",
        lender_type="Bank",
        min_score=45,
        per_acre=Decimal("100000"),
        absolute_cap=Decimal("1000000"),
        rate_tiers=((75, Decimal("10.0")), (0, Decimal("11.5"))),
        duration_months=36,
        recommended_range=(70, None),
        loan_amount_min=Decimal("50000"),
        processing_fee_percent=Decimal("1.0"),
        collateral_required="Land mortgage",
        features=("Longer repayment tenure",
                  "Government-backed",
                  "Agricultural insurance options",
                  "Subsidy schemes available"),
        eligibility="Trust score above 45",
    ),
    LoanProduct(
        offer_id="COMM-001",
        lender_name="Commercial Bank Agri Loan",
        lender_type="Commercial Bank",
        min_score=70,
        per_acre=Decimal("150000"),
        absolute_cap=Decimal("2000000"),
        rate_tiers=((80, Decimal("10.5")), (0, Decimal("11.75"))),
        duration_months=48,
        recommended_range=(80, None),
        loan_amount_min=Decimal("100000"),
        processing_fee_percent=Decimal("1.5"),
        collateral_required="Land + Crop insurance",
        features=("Higher loan amounts",
                  "Competitive interest rates",
                  "Digital loan management",
                  "Crop insurance bundled"),
        eligibility="Trust score 70+ and verified land ownership",
    ),
    LoanProduct(
        offer_id="NBFC-001",
        lender_name="AgriFintech Solutions",
        lender_type="NBFC",
        min_score=30,
        max_score=70,
        per_acre=Decimal("60000"),
        absolute_cap=Decimal("300000"),
        rate_tiers=((50, Decimal("14.5")), (0, Decimal("16.5"))),
        duration_months=18,
        recommended_range=(40, 60),
        loan_amount_min=Decimal("20000"),
        processing_fee_percent=Decimal("2.0"),
        collateral_required="Post-dated cheques",
        features=("Quick disbursement (24-48 hours)",
                  "Minimal documentation",
                  "Mobile-first application",
                  "Flexible eligibility"),
        eligibility="Trust score 30+, Aadhaar verification",
    ),
)

IMPROVEMENT_TIPS = [
    "Register all your farms with complete details",
    "Add GPS coordinates to farms",
    "Record crop cultivation and harvest data",
    "Complete your profile verification",
]


def _in_range(score: int, low: int, high: Optional[int]) -> bool:
    return score >= low and (high is None or score < high)


def is_eligible(product: LoanProduct, score: int) -> bool:
    return _in_range(score, product.min_score, product.max_score)


def interest_rate_for(product: LoanProduct, score: int) -> Decimal:
    for threshold, rate in product.rate_tiers:
        if score >= threshold:
            return rate
    return product.rate_tiers[-1][1]


def build_offer(product: LoanProduct, score: int, total_land: Decimal) -> LoanOffer:
    rate = interest_rate_for(product, score)
    return LoanOffer(
        offer_id=product.offer_id,
        lender_name=product.lender_name,
        lender_type=product.lender_type,
        loan_amount_min=product.loan_amount_min,
        loan_amount_max=min(total_land * product.per_acre, product.absolute_cap),
        interest_rate=rate,
        duration_months=product.duration_months,
        emi_per_lakh=AmortizationCalculator.emi(EMI_REFERENCE_PRINCIPAL, rate, product.duration_months),
        processing_fee_percent=product.processing_fee_percent,
        collateral_required=product.collateral_required,
        features=list(product.features),
        eligibility=product.eligibility,
        recommended=_in_range(score, *product.recommended_range),
    )


def rank_offers(offers: List[LoanOffer]) -> List[LoanOffer]:
    """Recommended first, then ascending interest rate"""
    return sorted(offers, key=lambda o: (not o.recommended, o.interest_rate))


class LoanOfferService:
    def __init__(self, farmer_repo: FarmerRepository = None, farm_repo: FarmRepository = None,
                 products=LOAN_PRODUCTS):
        self.farmer_repo = farmer_repo or FarmerRepository()
        self.farm_repo = farm_repo or FarmRepository()
        self.products = products

    def generate_offers(self, farmer_id: str) -> OfferSet:
        """Offers from the last persisted score; does not recompute it"""
        farmer = self.farmer_repo.find_farmer(farmer_id)
        if not farmer:
            raise FarmerNotFoundException(f"No farmer found with ID: {farmer_id}")

        score = farmer.trust_score or 0
        risk_level = farmer.risk_level or RiskLevel.HIGH.value
        farms = self.farm_repo.find_by_farmer(farmer_id)
        total_land = sum((Decimal(str(f.land_size_acres or 0)) for f in farms), Decimal("0"))

        offers = [build_offer(p, score, total_land) for p in self.products if is_eligible(p, score)]

        LoggingUtils.log_business_event(
            "loan_offers_generated", "farmer", farmer_id,
            details={'trust_score': score, 'eligible_offers': len(offers)}
        )

        offer_set = OfferSet(
            farmer_id=farmer_id,
            farmer_name=farmer.full_name,
            trust_score=score,
            risk_level=risk_level,
            total_land_acres=total_land,
        )
        if not offers:
            offer_set.message = "No loan offers available. Please improve your trust score."
            offer_set.improvement_tips = list(IMPROVEMENT_TIPS)
            return offer_set

        offer_set.offers = rank_offers(offers)
        return offer_set
