"""
Crop Repository
Handles database operations for the crops table
"""

from typing import List, Optional
from mysql.connector import Error
import logging

from core.repositories.base_repository import BaseRepository
from core.repositories.sequence_repository import SequenceRepository
from core.models.entities import Crop, CropStatus, Farm, enum_value
from utils.validators import FarmRecordValidator
from utils.exceptions import DatabaseException

logger = logging.getLogger(__name__)

class CropRepository(BaseRepository):
    """Repository for crops table operations"""

    def __init__(self, db=None, sequence_repo: SequenceRepository = None):
        super().__init__('crops', 'crop_id', db)
        self.sequence_repo = sequence_repo or SequenceRepository(self.db)

    def create_crop(self, crop: Crop, farm: Farm) -> str:
        """Record a crop on a farm, enforcing date and area invariants"""
        FarmRecordValidator.validate_crop(crop, farm)

        crop_id = crop.crop_id or self.sequence_repo.next_id("CROP", "crop")
        return self.create({
            'crop_id': crop_id,
            'farm_id': farm.farm_id,
            'crop_type': crop.crop_type,
            'season': crop.season,
            'sowing_date': crop.sowing_date,
            'expected_harvest_date': crop.expected_harvest_date,
            'actual_harvest_date': crop.actual_harvest_date,
            'area_acres': crop.area_acres,
            'expected_yield_qtl': crop.expected_yield_qtl,
            'actual_yield_qtl': crop.actual_yield_qtl,
            'crop_status': enum_value(crop.crop_status)
        })

    def find_crop_by_id(self, crop_id: str) -> Optional[Crop]:
        crop_data = self.find_by_id(crop_id)
        return self._dict_to_crop(crop_data) if crop_data else None

    def find_by_farm(self, farm_id: str) -> List[Crop]:
        """Crops on one farm, most recently sown first"""
        crops_data = self.find_by_field('farm_id', farm_id, order_by='sowing_date DESC')
        return [self._dict_to_crop(crop_data) for crop_data in crops_data]

    def update_crop(self, crop: Crop) -> bool:
        """Persist the outcome fields of an existing crop"""
        return self.update(crop.crop_id, {
            'crop_status': enum_value(crop.crop_status),
            'actual_harvest_date': crop.actual_harvest_date,
            'actual_yield_qtl': crop.actual_yield_qtl
        })

    def find_by_farms(self, farm_ids: List[str]) -> List[Crop]:
        """Find all crops on the given farms"""
        if not farm_ids:
            return []
        try:
            placeholders = ', '.join(['%s'] * len(farm_ids))
            query = f"SELECT * FROM {self.table_name} WHERE farm_id IN ({placeholders}) ORDER BY sowing_date"
            results = self.db.execute_query(query, tuple(farm_ids), fetch_all=True)
            return [self._dict_to_crop(crop_data) for crop_data in results or []]
        except Error as e:
            logger.error(f"Error finding crops for farms {farm_ids}: {e}")
            raise DatabaseException(f"Failed to find crops: {str(e)}")

    def find_latest_growing(self, farm_id: str) -> Optional[Crop]:
        """Most recently sown crop still in the ground"""
        try:
            query = f"""
                SELECT * FROM {self.table_name}
                WHERE farm_id = %s AND crop_status = 'growing'
                ORDER BY sowing_date DESC
                LIMIT 1
            """
            result = self.db.execute_query(query, (farm_id,), fetch_one=True)
            return self._dict_to_crop(result) if result else None
        except Error as e:
            logger.error(f"Error finding growing crop for farm {farm_id}: {e}")
            raise DatabaseException(f"Failed to find crop: {str(e)}")

    def _dict_to_crop(self, crop_data: dict) -> Crop:
        """Convert dictionary to Crop object"""
        raw_status = crop_data.get('crop_status') or CropStatus.GROWING.value
        try:
            status = CropStatus(raw_status)
        except ValueError:
            logger.error(f"Crop {crop_data.get('crop_id')} has unknown crop_status '{raw_status}'")
            raise DatabaseException(f"Unknown crop_status '{raw_status}' stored for crop {crop_data.get('crop_id')}")

        return Crop(
            crop_id=crop_data['crop_id'],
            farm_id=crop_data['farm_id'],
            crop_type=crop_data.get('crop_type', ''),
            season=crop_data.get('season'),
            sowing_date=crop_data.get('sowing_date'),
            expected_harvest_date=crop_data.get('expected_harvest_date'),
            actual_harvest_date=crop_data.get('actual_harvest_date'),
            area_acres=crop_data.get('area_acres'),
            expected_yield_qtl=crop_data.get('expected_yield_qtl'),
            actual_yield_qtl=crop_data.get('actual_yield_qtl'),
            crop_status=status,
            created_at=crop_data.get('created_at')
        )
