"""Tests for the MySQL repositories with a mocked database manager."""

from datetime import datetime, date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from mysql.connector import Error

from core.models.entities import Crop, CropStatus, Farm, LoanStatus, Repayment
from core.repositories.crop_repository import CropRepository
from core.repositories.farm_repository import FarmRepository
from core.repositories.farmer_repository import FarmerRepository
from core.repositories.loan_repository import LoanRepository
from core.repositories.sequence_repository import SequenceRepository
from db.database import apply_schema, split_statements
from utils.exceptions import DatabaseException, ValidationException


def _transactional_db():
    """db mock whose get_transaction() yields a connection with one cursor"""
    db = MagicMock()
    conn = MagicMock()
    cursor = MagicMock()
    db.get_transaction.return_value.__enter__.return_value = conn
    conn.cursor.return_value = cursor
    return db, cursor


LOAN_ROW = {
    'loan_id': "LOAN1001", 'farmer_id': "FRM1001", 'bank_id': "BANK01",
    'loan_amount': Decimal("500000"), 'approved_amount': Decimal("400000"),
    'interest_rate': Decimal("10"), 'loan_duration_months': 24, 'tenure_seasons': 4,
    'emi_amount': Decimal("18458"), 'outstanding_amount': Decimal("0"),
    'amount_repaid': Decimal("442992"), 'loan_status': "repaid",
    'application_date': datetime(2026, 1, 15),
}


class TestSequenceRepository:

    def test_formats_next_value(self):
        db, cursor = _transactional_db()
        cursor.rowcount = 1
        cursor.fetchone.return_value = (1001,)

        assert SequenceRepository(db).next_id("LOAN", "loan") == "LOAN1001"

    def test_missing_counter_falls_back_to_timestamp(self):
        db, cursor = _transactional_db()
        cursor.rowcount = 0

        generated = SequenceRepository(db).next_id("REP", "repayment")
        assert generated.startswith("REP")
        assert len(generated) == len("REP") + 6

    def test_driver_error_falls_back_to_timestamp(self):
        db = MagicMock()
        db.get_transaction.side_effect = Error("connection refused")

        generated = SequenceRepository(db).next_id("FARM", "farm")
        assert generated.startswith("FARM")
        assert generated[4:].isdigit()


class TestLoanRepository:

    def test_record_repayment_writes_nothing_when_not_repayable(self):
        db, cursor = _transactional_db()
        cursor.rowcount = 0
        repo = LoanRepository(db)

        result = repo.record_repayment(Repayment(repayment_id="REP1", loan_id="LOAN1001",
                                                 repayment_amount=Decimal("100")))

        assert result is None
        assert cursor.execute.call_count == 1
        assert cursor.execute.call_args[0][0].lstrip().startswith("UPDATE")

    def test_record_repayment_updates_then_appends(self):
        db, cursor = _transactional_db()
        cursor.rowcount = 1
        cursor.fetchone.return_value = LOAN_ROW
        repo = LoanRepository(db)

        loan = repo.record_repayment(Repayment(repayment_id="REP1", loan_id="LOAN1001",
                                               repayment_amount=Decimal("1000"),
                                               repayment_date=datetime(2026, 2, 1)))

        statements = [c[0][0] for c in cursor.execute.call_args_list]
        assert "loan_status = IF" in statements[0]
        assert "GREATEST(outstanding_amount" in statements[0]
        assert "INSERT INTO loan_repayments" in statements[1]
        assert loan.loan_status == LoanStatus.REPAID
        assert loan.outstanding_amount == 0

    def test_record_repayment_wraps_driver_errors(self):
        db = MagicMock()
        db.get_transaction.side_effect = Error("deadlock")
        with pytest.raises(DatabaseException):
            LoanRepository(db).record_repayment(Repayment(repayment_id="REP1", loan_id="L",
                                                          repayment_amount=Decimal("1")))

    def test_disburse_is_guarded_on_status_and_bank(self):
        db = MagicMock()
        db.execute_query.return_value = 0

        assert LoanRepository(db).mark_disbursed("LOAN1001", "BANK01", "TXN1", datetime(2026, 2, 1)) is False
        query, params = db.execute_query.call_args[0]
        assert query.endswith("AND loan_status = %s AND bank_id = %s")
        assert params[-2:] == ("approved", "BANK01")

    def test_approve_is_guarded_on_pending(self):
        db = MagicMock()
        db.execute_query.return_value = 1

        assert LoanRepository(db).mark_approved("LOAN1001", "BANK01", Decimal("1"), Decimal("10"), 1,
                                                Decimal("1"), Decimal("1"), datetime(2026, 1, 1),
                                                date(2026, 2, 1)) is True
        query, params = db.execute_query.call_args[0]
        assert "loan_status = %s" in query
        assert params[-1] == "pending"

    def test_find_applications_default_is_pending(self):
        db = MagicMock()
        db.execute_query.return_value = [LOAN_ROW]

        loans = LoanRepository(db).find_applications()

        query, params = db.execute_query.call_args[0]
        assert "WHERE loan_status = %s" in query
        assert "ORDER BY application_date DESC" in query
        assert params == ("pending",)
        assert loans[0].loan_id == "LOAN1001"

    def test_find_applications_score_range_and_tier(self):
        db = MagicMock()
        db.execute_query.return_value = []

        LoanRepository(db).find_applications(min_score=40, max_score=75, risk_level="Medium")

        query, params = db.execute_query.call_args[0]
        assert "trust_score_at_application >= %s AND trust_score_at_application <= %s" in query
        assert "risk_level = %s" in query
        assert params == ("pending", 40, 75, "Medium")

    def test_row_mapping(self):
        db = MagicMock()
        db.execute_query.return_value = dict(LOAN_ROW, amount_repaid=None)

        loan = LoanRepository(db).find_loan_by_id("LOAN1001")
        assert loan.amount_repaid == Decimal("0")
        assert loan.tenure_seasons == 4


class TestFarmerRepository:

    def test_missing_farmer(self):
        db = MagicMock()
        db.execute_query.return_value = None
        assert FarmerRepository(db).find_farmer("FRM404") is None

    def test_update_trust_score(self):
        db = MagicMock()
        db.execute_query.return_value = 1
        assert FarmerRepository(db).update_trust_score("FRM1", 72, "Medium", datetime(2026, 1, 1))
        query, params = db.execute_query.call_args[0]
        assert query.startswith("UPDATE farmers SET trust_score = %s, risk_level = %s")
        assert params[:2] == (72, "Medium")

    def test_driver_errors_are_wrapped(self):
        db = MagicMock()
        db.execute_query.side_effect = Error("gone away")
        with pytest.raises(DatabaseException):
            FarmerRepository(db).find_farmer("FRM1")


class TestFarmAndCropRepositories:

    def test_farm_requires_positive_land(self):
        db = MagicMock()
        with pytest.raises(ValidationException):
            FarmRepository(db, sequence_repo=MagicMock()).create_farm(
                Farm(farmer_id="FRM1", land_size_acres=Decimal("0")))
        db.execute_query.assert_not_called()

    def test_farm_id_from_sequence(self):
        db = MagicMock()
        sequence = MagicMock()
        sequence.next_id.return_value = "FARM1007"

        farm_id = FarmRepository(db, sequence_repo=sequence).create_farm(
            Farm(farmer_id="FRM1", land_size_acres=Decimal("2.5")))

        assert farm_id == "FARM1007"
        sequence.next_id.assert_called_once_with("FARM", "farm")

    @pytest.mark.parametrize("crop", [
        Crop(crop_type="Rice", season="Monsoon", sowing_date=date(2026, 6, 1)),
        Crop(crop_type="Rice", sowing_date=date(2026, 6, 1), expected_harvest_date=date(2026, 6, 1)),
        Crop(crop_type="Rice", sowing_date=date(2026, 6, 1), area_acres=Decimal("5.5")),
        Crop(crop_type="Rice", sowing_date=date(2026, 6, 1), actual_yield_qtl=Decimal("-1")),
        Crop(crop_type="Rice"),
    ])
    def test_crop_invariants(self, crop):
        db = MagicMock()
        farm = Farm(farm_id="FARM1", farmer_id="FRM1", land_size_acres=Decimal("5"))
        with pytest.raises(ValidationException):
            CropRepository(db, sequence_repo=MagicMock()).create_crop(crop, farm)
        db.execute_query.assert_not_called()

    def test_no_farms_means_no_query(self):
        db = MagicMock()
        assert CropRepository(db, sequence_repo=MagicMock()).find_by_farms([]) == []
        db.execute_query.assert_not_called()

    def test_missing_status_reads_as_growing(self):
        db = MagicMock()
        db.execute_query.return_value = [{'crop_id': "C1", 'farm_id': "F1", 'crop_status': None}]
        crops = CropRepository(db, sequence_repo=MagicMock()).find_by_farms(["F1"])
        assert crops[0].crop_status.value == "growing"

    def test_unknown_stored_status_is_a_store_error(self):
        db = MagicMock()
        db.execute_query.return_value = [{'crop_id': "C1", 'farm_id': "F1", 'crop_status': "wilted"}]
        with pytest.raises(DatabaseException):
            CropRepository(db, sequence_repo=MagicMock()).find_by_farms(["F1"])

    def test_update_crop_writes_outcome_fields_only(self):
        db = MagicMock()
        db.execute_query.return_value = 1
        crop = Crop(crop_id="C1", farm_id="F1", crop_type="Rice", crop_status=CropStatus.HARVESTED,
                    actual_harvest_date=date(2026, 10, 1), actual_yield_qtl=Decimal("18"))

        assert CropRepository(db, sequence_repo=MagicMock()).update_crop(crop) is True
        query, params = db.execute_query.call_args[0]
        assert query.startswith("UPDATE crops SET crop_status = %s, actual_harvest_date = %s, actual_yield_qtl = %s")
        assert params == ("harvested", date(2026, 10, 1), Decimal("18"), "C1")


class TestSchemaBootstrap:
    def test_split_statements_drops_comments_and_blanks(self):
        script = "-- header\nCREATE TABLE a (id INT);\n\n-- note\nINSERT IGNORE INTO a VALUES (1);\n"
        assert split_statements(script) == [
            "CREATE TABLE a (id INT)",
            "INSERT IGNORE INTO a VALUES (1)",
        ]

    def test_apply_schema_runs_packaged_script_in_one_transaction(self):
        db, cursor = _transactional_db()

        count = apply_schema(db)

        assert count == 7
        assert db.get_transaction.call_count == 1
        executed = [c.args[0] for c in cursor.execute.call_args_list]
        assert executed[0].startswith("CREATE TABLE IF NOT EXISTS id_sequences")
        assert any(stmt.startswith("CREATE TABLE IF NOT EXISTS loan_repayments") for stmt in executed)
        cursor.close.assert_called_once()
