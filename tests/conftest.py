"""Shared fixtures for the Agri-Trust test suite.

The fakes below mirror the repository method contracts in memory so the
services can be exercised without a MySQL server.
"""

import threading
from dataclasses import replace
from datetime import datetime, date
from decimal import Decimal

import pytest

from core.models.entities import (
    Farmer, Farm, Crop, CropStatus, LoanStatus, VegetationReading, Confidence,
)
from core.services.record_service import FarmRecordService
from core.services.vegetation_service import VegetationHealthEvaluator, health_band
from utils.validators import FarmRecordValidator
from utils.exceptions import UpstreamUnavailableException

FIXED_NOW = datetime(2026, 1, 15, 10, 30)


# ═══════════════════════════════════════════════════
# In-memory repositories
# ═══════════════════════════════════════════════════

class FakeFarmerRepository:
    def __init__(self, farmers=()):
        self.farmers = {f.farmer_id: f for f in farmers}
        self.score_writes = []

    def find_farmer(self, farmer_id):
        farmer = self.farmers.get(farmer_id)
        return replace(farmer) if farmer else None

    def update_trust_score(self, farmer_id, trust_score, risk_level, updated_at=None):
        farmer = self.farmers.get(farmer_id)
        if not farmer:
            return False
        farmer.trust_score = trust_score
        farmer.risk_level = risk_level
        farmer.updated_at = updated_at
        self.score_writes.append((farmer_id, trust_score, risk_level))
        return True


class FakeFarmRepository:
    def __init__(self, farms=()):
        self.farms = list(farms)
        self.sequence = FakeSequenceRepository(start=5001)

    def create_farm(self, farm):
        FarmRecordValidator.validate_land_size(farm.land_size_acres)
        stored = replace(farm, farm_id=farm.farm_id or self.sequence.next_id("FARM", "farm"))
        self.farms.append(stored)
        return stored.farm_id

    def find_farm_by_id(self, farm_id):
        return next((f for f in self.farms if f.farm_id == farm_id), None)

    def find_by_farmer(self, farmer_id):
        return sorted((f for f in self.farms if f.farmer_id == farmer_id), key=lambda f: f.farm_id)


class FakeCropRepository:
    def __init__(self, crops=()):
        self.crops = list(crops)
        self.sequence = FakeSequenceRepository(start=5001)

    def create_crop(self, crop, farm):
        FarmRecordValidator.validate_crop(crop, farm)
        stored = replace(crop, farm_id=farm.farm_id,
                         crop_id=crop.crop_id or self.sequence.next_id("CROP", "crop"))
        self.crops.append(stored)
        return stored.crop_id

    def find_crop_by_id(self, crop_id):
        crop = next((c for c in self.crops if c.crop_id == crop_id), None)
        return replace(crop) if crop else None

    def find_by_farm(self, farm_id):
        crops = [c for c in self.crops if c.farm_id == farm_id]
        return sorted(crops, key=lambda c: c.sowing_date or date.min, reverse=True)

    def update_crop(self, crop):
        for i, stored in enumerate(self.crops):
            if stored.crop_id == crop.crop_id:
                self.crops[i] = replace(crop)
                return True
        return False

    def find_by_farms(self, farm_ids):
        return [c for c in self.crops if c.farm_id in farm_ids]

    def find_latest_growing(self, farm_id):
        growing = [c for c in self.crops
                   if c.farm_id == farm_id and c.crop_status == CropStatus.GROWING]
        growing.sort(key=lambda c: c.sowing_date or date.min, reverse=True)
        return growing[0] if growing else None


class FakeSequenceRepository:
    def __init__(self, start=1001):
        self.start = start
        self.counters = {}

    def next_id(self, prefix, name):
        value = self.counters.get(name, self.start)
        self.counters[name] = value + 1
        return f"{prefix}{value}"


class FakeLoanRepository:
    """Loans and ledger in memory; balance changes happen under one lock"""

    REPAYABLE = (LoanStatus.APPROVED, LoanStatus.DISBURSED)

    def __init__(self):
        self.loans = {}
        self.repayments = []
        self._lock = threading.Lock()

    def create_loan(self, loan):
        self.loans[loan.loan_id] = replace(loan)
        return loan.loan_id

    def find_loan_by_id(self, loan_id):
        loan = self.loans.get(loan_id)
        return replace(loan) if loan else None

    def find_by_farmer(self, farmer_id):
        loans = [replace(l) for l in self.loans.values() if l.farmer_id == farmer_id]
        return sorted(loans, key=lambda l: l.application_date, reverse=True)

    def find_applications(self, status="pending", min_score=None, max_score=None, risk_level=None):
        loans = [replace(l) for l in self.loans.values()
                 if l.loan_status.value == status
                 and (min_score is None or l.trust_score_at_application >= min_score)
                 and (max_score is None or l.trust_score_at_application <= max_score)
                 and (not risk_level or l.risk_level == risk_level)]
        return sorted(loans, key=lambda l: l.application_date, reverse=True)

    def _guarded(self, loan_id, status, **changes):
        with self._lock:
            loan = self.loans.get(loan_id)
            if not loan or loan.loan_status != status:
                return False
            if 'bank_id' in changes and status == LoanStatus.APPROVED and loan.bank_id != changes['bank_id']:
                return False
            for key, value in changes.items():
                setattr(loan, key, value)
            return True

    def mark_approved(self, loan_id, bank_id, approved_amount, interest_rate, tenure_seasons,
                      emi_amount, outstanding_amount, approval_date, repayment_due_date):
        return self._guarded(loan_id, LoanStatus.PENDING, bank_id=bank_id,
                             loan_status=LoanStatus.APPROVED, approved_amount=approved_amount,
                             interest_rate=interest_rate, tenure_seasons=tenure_seasons,
                             emi_amount=emi_amount, outstanding_amount=outstanding_amount,
                             approval_date=approval_date, repayment_due_date=repayment_due_date)

    def mark_rejected(self, loan_id, bank_id, reason):
        return self._guarded(loan_id, LoanStatus.PENDING, bank_id=bank_id,
                             loan_status=LoanStatus.REJECTED, rejection_reason=reason)

    def mark_disbursed(self, loan_id, bank_id, transaction_id, disbursement_date):
        return self._guarded(loan_id, LoanStatus.APPROVED, bank_id=bank_id,
                             loan_status=LoanStatus.DISBURSED, transaction_id=transaction_id,
                             disbursement_date=disbursement_date)

    def record_repayment(self, repayment):
        with self._lock:
            loan = self.loans.get(repayment.loan_id)
            if not loan or loan.loan_status not in self.REPAYABLE:
                return None
            remaining = loan.outstanding_amount - repayment.repayment_amount
            if remaining <= 0:
                loan.loan_status = LoanStatus.REPAID
            loan.amount_repaid += repayment.repayment_amount
            loan.outstanding_amount = max(remaining, Decimal("0"))
            self.repayments.append(replace(repayment))
            return replace(loan)

    def get_repayments(self, loan_id):
        return list(reversed([r for r in self.repayments if r.loan_id == loan_id]))


# ═══════════════════════════════════════════════════
# Evaluator stubs
# ═══════════════════════════════════════════════════

class StubVegetation(VegetationHealthEvaluator):
    """Fixed index for every crop; records what it was asked about"""

    def __init__(self, index=0.75):
        self.index = index
        self.calls = []

    def evaluate(self, farm, crop=None):
        self.calls.append((farm.farm_id, crop.crop_id if crop else None))
        return VegetationReading(index=self.index, health_band=health_band(self.index),
                                 confidence=Confidence.HIGH, data_source="stub")


class FailingVegetation(VegetationHealthEvaluator):
    def evaluate(self, farm, crop=None):
        raise UpstreamUnavailableException("satellite provider timed out")


# ═══════════════════════════════════════════════════
# Record fixtures
# ═══════════════════════════════════════════════════

@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def veteran_farmer():
    """Verified farmer registered three years ago"""
    return Farmer(farmer_id="FRM1001", full_name="Ramesh Patil", aadhaar_verified=True,
                  verification_status="verified", profile_completion=100,
                  created_at=datetime(2023, 1, 1))


@pytest.fixture
def new_farmer():
    return Farmer(farmer_id="FRM1002", full_name="Sunita Devi", created_at=FIXED_NOW)


@pytest.fixture
def irrigated_farm():
    return Farm(farm_id="FARM1001", farmer_id="FRM1001", land_size_acres=Decimal("10"),
                gps_lat=Decimal("22.5"), gps_long=Decimal("75.8"), irrigation_type="Canal",
                soil_type="Black", state="Madhya Pradesh", district="Indore", village="Sanwer")


@pytest.fixture
def harvested_wheat():
    return Crop(crop_id="CROP1001", farm_id="FARM1001", crop_type="Wheat", season="Rabi",
                sowing_date=date(2025, 11, 1), actual_harvest_date=date(2026, 3, 20),
                area_acres=Decimal("8"), expected_yield_qtl=Decimal("20"),
                actual_yield_qtl=Decimal("20"), crop_status=CropStatus.HARVESTED)


@pytest.fixture
def farmer_repo(veteran_farmer, new_farmer):
    return FakeFarmerRepository([veteran_farmer, new_farmer])


@pytest.fixture
def farm_repo(irrigated_farm):
    return FakeFarmRepository([irrigated_farm])


@pytest.fixture
def crop_repo(harvested_wheat):
    return FakeCropRepository([harvested_wheat])


@pytest.fixture
def record_service(farmer_repo, farm_repo, crop_repo):
    return FarmRecordService(farmer_repo=farmer_repo, farm_repo=farm_repo, crop_repo=crop_repo)


@pytest.fixture
def loan_repo():
    return FakeLoanRepository()


@pytest.fixture
def sequence_repo():
    return FakeSequenceRepository()
