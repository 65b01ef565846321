"""
Base Repository Class
Provides common database operations for all repositories
"""

from abc import ABC
from typing import List, Optional, Dict, Any
import logging
from mysql.connector import Error

from db.database import db_manager
from utils.exceptions import DatabaseException, ValidationException

logger = logging.getLogger(__name__)

class BaseRepository(ABC):
    """Base repository with common key-based operations"""

    def __init__(self, table_name: str, primary_key: str, db=None):
        self.table_name = table_name
        self.primary_key = primary_key
        self.db = db or db_manager

    def create(self, data: Dict[str, Any]) -> str:
        """Insert a new record and return its key"""
        try:
            clean_data = {k: v for k, v in data.items() if v is not None}

            if not clean_data.get(self.primary_key):
                raise ValidationException(f"{self.primary_key} is required for creation")

            columns = ', '.join(clean_data.keys())
            placeholders = ', '.join(['%s'] * len(clean_data))
            values = tuple(clean_data.values())

            query = f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders})"

            self.db.execute_query(query, values)
            logger.info(f"Created record in {self.table_name} with ID: {clean_data[self.primary_key]}")
            return clean_data[self.primary_key]

        except Error as e:
            logger.error(f"Error creating record in {self.table_name}: {e}")
            raise DatabaseException(f"Failed to create record: {str(e)}")

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Find record by primary key"""
        try:
            query = f"SELECT * FROM {self.table_name} WHERE {self.primary_key} = %s"
            return self.db.execute_query(query, (record_id,), fetch_one=True)

        except Error as e:
            logger.error(f"Error finding record by ID in {self.table_name}: {e}")
            raise DatabaseException(f"Failed to find record: {str(e)}")

    def find_by_field(self, field_name: str, field_value: Any, order_by: str = None) -> List[Dict[str, Any]]:
        """Find records by specific field"""
        try:
            query = f"SELECT * FROM {self.table_name} WHERE {field_name} = %s"
            if order_by:
                query += f" ORDER BY {order_by}"
            result = self.db.execute_query(query, (field_value,), fetch_all=True)
            return result or []

        except Error as e:
            logger.error(f"Error finding records by {field_name} in {self.table_name}: {e}")
            raise DatabaseException(f"Failed to find records: {str(e)}")

    def update(self, record_id: str, data: Dict[str, Any], where_clause: str = None,
               where_params: tuple = ()) -> bool:
        """Update record by primary key, optionally guarded by an extra condition.

        Returns False when no row matched (missing record or failed guard).
        """
        try:
            clean_data = {k: v for k, v in data.items() if v is not None and k != self.primary_key}

            if not clean_data:
                return False

            set_clause = ', '.join([f"{k} = %s" for k in clean_data.keys()])
            values = tuple(clean_data.values()) + (record_id,)

            query = f"UPDATE {self.table_name} SET {set_clause} WHERE {self.primary_key} = %s"
            if where_clause:
                query += f" AND {where_clause}"
                values += tuple(where_params)

            rowcount = self.db.execute_query(query, values)
            logger.info(f"Updated record in {self.table_name} with ID: {record_id}")
            return bool(rowcount)

        except Error as e:
            logger.error(f"Error updating record in {self.table_name}: {e}")
            raise DatabaseException(f"Failed to update record: {str(e)}")

