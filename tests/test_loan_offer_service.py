"""Tests for core/services/loan_offer_service.py."""

from decimal import Decimal

import pytest

from core.models.entities import Farmer, Farm
from core.services.loan_offer_service import (
    LoanOfferService, LOAN_PRODUCTS, is_eligible, interest_rate_for, build_offer, rank_offers,
)
from utils.exceptions import FarmerNotFoundException

from conftest import FakeFarmerRepository, FakeFarmRepository

PRODUCTS = {p.offer_id: p for p in LOAN_PRODUCTS}


def _offer_service(score, acres=(), risk_level="Medium"):
    farmer = Farmer(farmer_id="FRM1", full_name="Anil Kumar", trust_score=score, risk_level=risk_level)
    farms = [Farm(farm_id=f"FARM{i}", farmer_id="FRM1", land_size_acres=Decimal(str(a)))
             for i, a in enumerate(acres)]
    return LoanOfferService(farmer_repo=FakeFarmerRepository([farmer]),
                            farm_repo=FakeFarmRepository(farms))


class TestEligibility:

    @pytest.mark.parametrize("score,expected", [
        (29, []),
        (30, ["NBFC-001"]),
        (35, ["NBFC-001"]),
        (40, ["KCC-001", "NBFC-001"]),
        (45, ["KCC-001", "RRB-001", "NBFC-001"]),
        (50, ["KCC-001", "COOP-001", "RRB-001", "NBFC-001"]),
        (69, ["KCC-001", "COOP-001", "RRB-001", "NBFC-001"]),
        (70, ["KCC-001", "COOP-001", "RRB-001", "COMM-001"]),
        (100, ["KCC-001", "COOP-001", "RRB-001", "COMM-001"]),
    ])
    def test_thresholds(self, score, expected):
        assert [p.offer_id for p in LOAN_PRODUCTS if is_eligible(p, score)] == expected

    @pytest.mark.parametrize("offer_id,score,rate", [
        ("KCC-001", 90, Decimal("7.0")),
        ("COOP-001", 70, Decimal("9.5")),
        ("COOP-001", 69, Decimal("10.5")),
        ("RRB-001", 75, Decimal("10.0")),
        ("RRB-001", 74, Decimal("11.5")),
        ("COMM-001", 80, Decimal("10.5")),
        ("COMM-001", 79, Decimal("11.75")),
        ("NBFC-001", 50, Decimal("14.5")),
        ("NBFC-001", 49, Decimal("16.5")),
    ])
    def test_rate_tiers(self, offer_id, score, rate):
        assert interest_rate_for(PRODUCTS[offer_id], score) == rate


class TestBuildOffer:

    def test_cap_is_land_times_per_acre(self):
        offer = build_offer(PRODUCTS["COOP-001"], 72, Decimal("4"))
        assert offer.loan_amount_max == Decimal("300000")

    def test_absolute_cap_applies(self):
        offer = build_offer(PRODUCTS["COMM-001"], 85, Decimal("50"))
        assert offer.loan_amount_max == Decimal("2000000")

    def test_emi_per_lakh(self):
        offer = build_offer(PRODUCTS["KCC-001"], 60, Decimal("2"))
        # 1 lakh at 7% over 12 months
        assert offer.emi_per_lakh == Decimal("8653")
        assert offer.recommended is True

    def test_ranking_puts_recommended_first_then_cheapest(self):
        offers = [build_offer(PRODUCTS[i], 82, Decimal("5")) for i in ("KCC-001", "COOP-001", "RRB-001", "COMM-001")]
        ranked = rank_offers(offers)
        assert [o.offer_id for o in ranked] == ["KCC-001", "RRB-001", "COMM-001", "COOP-001"]


class TestGenerateOffers:

    def test_score_35_only_non_bank_lender(self):
        offer_set = _offer_service(35, acres=[2]).generate_offers("FRM1")
        assert [o.offer_id for o in offer_set.offers] == ["NBFC-001"]
        assert offer_set.offers[0].recommended is False

    def test_score_42_ten_acres(self):
        offer_set = _offer_service(42, acres=[6, 4]).generate_offers("FRM1")

        assert offer_set.total_land_acres == Decimal("10")
        assert [o.offer_id for o in offer_set.offers] == ["NBFC-001", "KCC-001"]
        nbfc, kcc = offer_set.offers
        assert nbfc.recommended is True
        assert nbfc.interest_rate == Decimal("16.5")
        assert nbfc.loan_amount_max == Decimal("300000")
        assert kcc.loan_amount_max == Decimal("300000")
        assert offer_set.eligible_offers == 2

    def test_zero_farms_gives_zero_caps(self):
        offer_set = _offer_service(80).generate_offers("FRM1")
        assert offer_set.offers
        assert all(o.loan_amount_max == 0 for o in offer_set.offers)

    def test_no_offers_below_every_threshold(self):
        offer_set = _offer_service(None, acres=[3], risk_level=None).generate_offers("FRM1")
        assert offer_set.offers == []
        assert offer_set.trust_score == 0
        assert offer_set.risk_level == "High"
        assert "improve your trust score" in offer_set.message
        assert len(offer_set.improvement_tips) == 4

    def test_unknown_farmer(self):
        with pytest.raises(FarmerNotFoundException):
            _offer_service(60).generate_offers("FRM404")
