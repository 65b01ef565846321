"""
Sequence Repository
Human-readable identifiers (FARM…, CROP…, LOAN…, REP…) from the id_sequences table
"""

import logging
from mysql.connector import Error

from db.database import db_manager
from utils.helpers import StringUtils

logger = logging.getLogger(__name__)

class SequenceRepository:
    """Allocates identifiers from named counters"""

    def __init__(self, db=None):
        self.db = db or db_manager

    def next_value(self, name: str):
        """Atomically take the next value of a named counter, None if unavailable"""
        with self.db.get_transaction() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "UPDATE id_sequences SET next_value = LAST_INSERT_ID(next_value + 1) WHERE name = %s",
                    (name,)
                )
                if cursor.rowcount == 0:
                    return None
                cursor.execute("SELECT LAST_INSERT_ID() - 1")
                row = cursor.fetchone()
                return row[0] if row else None
            finally:
                cursor.close()

    def next_id(self, prefix: str, name: str) -> str:
        """Next identifier, falling back to a timestamp suffix when the sequence fails"""
        try:
            value = self.next_value(name)
        except Error as e:
            logger.warning(f"Sequence '{name}' unavailable, using timestamp fallback: {e}")
            value = None

        if value is None:
            return StringUtils.timestamp_suffix_id(prefix)
        return f"{prefix}{value}"
