"""
Farmer Repository
Handles database operations for the farmers table
"""

from typing import Optional
from datetime import datetime

from core.repositories.base_repository import BaseRepository
from core.models.entities import Farmer

class FarmerRepository(BaseRepository):
    """Repository for farmers table operations"""

    def __init__(self, db=None):
        super().__init__('farmers', 'farmer_id', db)

    def find_farmer(self, farmer_id: str) -> Optional[Farmer]:
        """Find farmer by ID"""
        farmer_data = self.find_by_id(farmer_id)
        if not farmer_data:
            return None

        return self._dict_to_farmer(farmer_data)

    def update_trust_score(self, farmer_id: str, trust_score: int, risk_level: str,
                           updated_at: datetime = None) -> bool:
        """Persist the cached score; concurrent recomputations are last-write-wins"""
        return self.update(farmer_id, {
            'trust_score': trust_score,
            'risk_level': risk_level,
            'updated_at': updated_at or datetime.now()
        })

    def _dict_to_farmer(self, farmer_data: dict) -> Farmer:
        """Convert dictionary to Farmer object"""
        return Farmer(
            farmer_id=farmer_data['farmer_id'],
            full_name=farmer_data.get('full_name', ''),
            mobile_number=farmer_data.get('mobile_number'),
            aadhaar_verified=bool(farmer_data.get('aadhaar_verified')),
            verification_status=farmer_data.get('verification_status') or 'pending',
            profile_completion=farmer_data.get('profile_completion') or 0,
            trust_score=farmer_data.get('trust_score'),
            risk_level=farmer_data.get('risk_level'),
            created_at=farmer_data.get('created_at'),
            updated_at=farmer_data.get('updated_at')
        )
