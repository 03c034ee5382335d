"""
Key-value storage backends

Every record collection lives in one named slot holding a JSON array.
Backends only move whole slot values; the record stores above them do
read-modify-write of a complete collection.
"""

import copy
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import psycopg2
from psycopg2 import sql
from psycopg2.extras import Json
from psycopg2.pool import SimpleConnectionPool

from hvac_billing.utils.config import settings
from hvac_billing.utils.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Interface shared by all storage backends"""
    
    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value of a slot, or None if the slot is empty"""
        raise NotImplementedError
    
    def set(self, key: str, value: Any):
        """Replace the value of a single slot"""
        self.set_many({key: value})
    
    def set_many(self, values: Dict[str, Any]):
        """Replace several slots in one atomic write"""
        raise NotImplementedError
    
    def delete(self, key: str) -> bool:
        """Remove a slot. Returns True if it existed"""
        raise NotImplementedError
    
    def close(self):
        """Release backend resources"""


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage for tests and throwaway sessions"""
    
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._slots: Dict[str, Any] = copy.deepcopy(initial or {})
    
    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._slots.get(key))
    
    def set_many(self, values: Dict[str, Any]):
        self._slots.update(copy.deepcopy(values))
    
    def delete(self, key: str) -> bool:
        if key not in self._slots:
            return False
        del self._slots[key]
        return True


class JsonFileStorage(KeyValueStorage):
    """
    All slots kept in a single JSON document on disk.
    
    Writes go to a temporary file in the same directory which then
    replaces the document, so a reader never sees a half-written file
    and set_many updates all of its slots together.
    """
    
    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.STORAGE_FILE)
        logger.info(f"Using JSON file storage at {self.path}")
    
    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read storage file {self.path}: {e}")
            raise StorageUnavailable(f"Storage file {self.path} is unreadable: {e}") from e
        if not isinstance(data, dict):
            logger.error(f"Storage file {self.path} does not hold a JSON object")
            raise StorageUnavailable(f"Storage file {self.path} is corrupt")
        return data
    
    def _dump(self, data: Dict[str, Any]):
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error(f"Failed to write storage file {self.path}: {e}")
            raise StorageUnavailable(f"Storage file {self.path} could not be written: {e}") from e
    
    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)
    
    def set_many(self, values: Dict[str, Any]):
        data = self._load()
        data.update(values)
        self._dump(data)
    
    def delete(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._dump(data)
        return True


class PostgresStorage(KeyValueStorage):
    """PostgreSQL-backed slots with connection pooling"""
    
    def __init__(self, table: Optional[str] = None):
        """Initialize database connection pool and the slot table"""
        self.pool: Optional[SimpleConnectionPool] = None
        self.table = table or settings.DB_TABLE
        self._initialize_pool()
    
    def _initialize_pool(self):
        """Create connection pool"""
        try:
            self.pool = SimpleConnectionPool(
                minconn=1,
                maxconn=10,
                host=settings.DB_HOST,
                port=settings.DB_PORT,
                database=settings.DB_NAME,
                user=settings.DB_USER,
                password=settings.DB_PASSWORD
            )
            logger.info("Database connection pool initialized")
            
            with self.get_cursor() as cursor:
                cursor.execute(
                    sql.SQL(
                        "CREATE TABLE IF NOT EXISTS {} (key TEXT PRIMARY KEY, value JSONB NOT NULL)"
                    ).format(sql.Identifier(self.table))
                )
        except psycopg2.Error as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise StorageUnavailable(f"Database unavailable: {e}") from e
    
    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections
        
        Commits when the block exits cleanly, rolls back otherwise.
        """
        conn = None
        try:
            conn = self.pool.getconn()
            yield conn
            conn.commit()
        except Exception as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            if conn:
                self.pool.putconn(conn)
    
    @contextmanager
    def get_cursor(self):
        """Context manager for a cursor inside one transaction"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()
    
    def get(self, key: str) -> Optional[Any]:
        query = sql.SQL("SELECT value FROM {} WHERE key = %s").format(sql.Identifier(self.table))
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, (key,))
                row = cursor.fetchone()
        except psycopg2.Error as e:
            raise StorageUnavailable(f"Could not read slot '{key}': {e}", key=key) from e
        return row[0] if row else None
    
    def set_many(self, values: Dict[str, Any]):
        query = sql.SQL(
            "INSERT INTO {} (key, value) VALUES (%s, %s) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value"
        ).format(sql.Identifier(self.table))
        try:
            with self.get_cursor() as cursor:
                for key, value in values.items():
                    cursor.execute(query, (key, Json(value)))
        except psycopg2.Error as e:
            raise StorageUnavailable(f"Could not write slots {sorted(values)}: {e}") from e
    
    def delete(self, key: str) -> bool:
        query = sql.SQL("DELETE FROM {} WHERE key = %s").format(sql.Identifier(self.table))
        try:
            with self.get_cursor() as cursor:
                cursor.execute(query, (key,))
                return cursor.rowcount > 0
        except psycopg2.Error as e:
            raise StorageUnavailable(f"Could not delete slot '{key}': {e}", key=key) from e
    
    def close(self):
        """Close all database connections in the pool"""
        if self.pool:
            self.pool.closeall()
            logger.info("Database connection pool closed")


def create_storage(backend: Optional[str] = None) -> KeyValueStorage:
    """Build the storage backend named by settings.STORAGE_BACKEND"""
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return JsonFileStorage(settings.STORAGE_FILE)
    if backend == "postgres":
        return PostgresStorage()
    raise ValueError(f"Unknown storage backend '{backend}'")


# Global singleton instance
_storage: Optional[KeyValueStorage] = None


def get_storage() -> KeyValueStorage:
    """Get the global storage instance"""
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage


def reset_storage():
    """Close and forget the global storage (useful for testing)."""
    global _storage
    if _storage is not None:
        _storage.close()
    _storage = None
