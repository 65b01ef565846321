"""
Database Configuration and Connection Management
Handles MySQL connection pooling and configuration for the Agri-Trust Engine
"""

from mysql.connector import pooling, Error
import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import List

# Configure logging
logging.basicConfig(level=os.getenv('AGRITRUST_LOG_LEVEL', 'INFO').upper())
logger = logging.getLogger(__name__)

class DatabaseConfig:
    """Database configuration management"""

    def __init__(self):
        self.config = {
            'host': os.getenv('DB_HOST', 'localhost'),
            'port': int(os.getenv('DB_PORT', 3306)),
            'database': os.getenv('DB_NAME', 'agritrust_db'),
            'user': os.getenv('DB_USER', 'root'),
            'password': os.getenv('DB_PASSWORD', ''),
            'charset': 'utf8mb4',
            'collation': 'utf8mb4_unicode_ci',
            'autocommit': False,
            'pool_name': 'agritrust_pool',
            'pool_size': int(os.getenv('DB_POOL_SIZE', 10)),
            'pool_reset_session': True
        }

        # Created on first use so importing repositories never opens a connection
        self.connection_pool = None

    def _initialize_pool(self):
        """Initialize connection pool"""
        try:
            self.connection_pool = pooling.MySQLConnectionPool(**self.config)
            logger.info("Database connection pool initialized successfully")
        except Error as e:
            logger.error(f"Error creating connection pool: {e}")
            raise

    def get_connection(self):
        """Get connection from pool"""
        if self.connection_pool is None:
            self._initialize_pool()
        try:
            return self.connection_pool.get_connection()
        except Error as e:
            logger.error(f"Error getting connection from pool: {e}")
            raise

    def test_connection(self) -> bool:
        """Test database connection"""
        try:
            conn = self.get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute("SELECT 1")
                result = cursor.fetchone()
                cursor.close()
                return result[0] == 1
            finally:
                conn.close()
        except Error as e:
            logger.error(f"Database connection test failed: {e}")
            return False

class DatabaseManager:
    """Database operations manager"""

    def __init__(self):
        self.db_config = DatabaseConfig()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections"""
        connection = None
        try:
            connection = self.db_config.get_connection()
            yield connection
        except Error as e:
            if connection:
                connection.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            if connection and connection.is_connected():
                connection.close()

    @contextmanager
    def get_transaction(self):
        """Context manager for database transactions.

        Rolls back on any exception raised inside the block, not only driver errors.
        """
        connection = None
        try:
            connection = self.db_config.get_connection()
            connection.start_transaction()
            yield connection
            connection.commit()
        except Exception as e:
            if connection:
                connection.rollback()
            logger.error(f"Transaction error: {e}")
            raise
        finally:
            if connection and connection.is_connected():
                connection.close()

    def execute_query(self, query: str, params: tuple = None, fetch_one: bool = False, fetch_all: bool = False):
        """Execute a query and return results"""
        with self.get_connection() as connection:
            cursor = connection.cursor(dictionary=True)
            try:
                cursor.execute(query, params or ())

                if fetch_one:
                    return cursor.fetchone()
                elif fetch_all:
                    return cursor.fetchall()
                else:
                    connection.commit()
                    return cursor.rowcount
            finally:
                cursor.close()

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def split_statements(script: str) -> List[str]:
    """Split a SQL script on semicolons, dropping `--` comment lines and blanks"""
    lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


def apply_schema(manager: "DatabaseManager" = None, path: Path = SCHEMA_PATH) -> int:
    """Create any missing tables and seed the id counters; returns statements run.

    Every statement in schema.sql is idempotent, so this is safe to re-run.
    """
    manager = manager or db_manager
    statements = split_statements(path.read_text(encoding="utf-8"))
    with manager.get_transaction() as conn:
        cursor = conn.cursor()
        try:
            for statement in statements:
                cursor.execute(statement)
        finally:
            cursor.close()
    logger.info(f"Applied {len(statements)} schema statements from {path.name}")
    return len(statements)

# Global database manager instance
db_manager = DatabaseManager()
