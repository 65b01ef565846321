"""
Farm Repository
Handles database operations for the farms table
"""

from typing import Optional, List

from core.repositories.base_repository import BaseRepository
from core.repositories.sequence_repository import SequenceRepository
from core.models.entities import Farm
from utils.validators import FarmRecordValidator
from utils.exceptions import ValidationException

class FarmRepository(BaseRepository):
    """Repository for farms table operations"""

    def __init__(self, db=None, sequence_repo: SequenceRepository = None):
        super().__init__('farms', 'farm_id', db)
        self.sequence_repo = sequence_repo or SequenceRepository(self.db)

    def create_farm(self, farm: Farm) -> str:
        """Register a farm for a farmer"""
        if not farm.farmer_id:
            raise ValidationException("farmer_id is required")
        FarmRecordValidator.validate_land_size(farm.land_size_acres)

        farm_id = farm.farm_id or self.sequence_repo.next_id("FARM", "farm")
        return self.create({
            'farm_id': farm_id,
            'farmer_id': farm.farmer_id,
            'land_size_acres': farm.land_size_acres,
            'gps_lat': farm.gps_lat,
            'gps_long': farm.gps_long,
            'irrigation_type': farm.irrigation_type,
            'soil_type': farm.soil_type,
            'state': farm.state,
            'district': farm.district,
            'village': farm.village
        })

    def find_farm_by_id(self, farm_id: str) -> Optional[Farm]:
        """Find farm by ID"""
        farm_data = self.find_by_id(farm_id)
        if not farm_data:
            return None

        return self._dict_to_farm(farm_data)

    def find_by_farmer(self, farmer_id: str) -> List[Farm]:
        """Find all farms owned by a farmer"""
        farms_data = self.find_by_field('farmer_id', farmer_id, order_by='farm_id')
        return [self._dict_to_farm(farm_data) for farm_data in farms_data]

    def _dict_to_farm(self, farm_data: dict) -> Farm:
        """Convert dictionary to Farm object"""
        return Farm(
            farm_id=farm_data['farm_id'],
            farmer_id=farm_data['farmer_id'],
            land_size_acres=farm_data['land_size_acres'],
            gps_lat=farm_data.get('gps_lat'),
            gps_long=farm_data.get('gps_long'),
            irrigation_type=farm_data.get('irrigation_type'),
            soil_type=farm_data.get('soil_type'),
            state=farm_data.get('state'),
            district=farm_data.get('district'),
            village=farm_data.get('village'),
            created_at=farm_data.get('created_at')
        )
