# target_allocation/db/connection.py
import os
from typing import Any, Dict, Literal
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from supabase import create_client, Client

from target_allocation.config import config
from target_allocation.exceptions import DatabaseError

DatabaseType = Literal["postgresql", "sqlite", "supabase"]

class DatabaseConfig:
    """Configuration for database connections."""

    @staticmethod
    def get_db_type() -> DatabaseType:
        """Get database type from configuration."""
        db_type = config.get('DATABASE', 'type', default='postgresql').lower()
        # Remove any comments from the value
        db_type = db_type.split('#')[0].strip()
        return db_type

    @staticmethod
    def engine_options(url: str) -> Dict[str, Any]:
        """Keyword arguments for create_engine; pooling applies to server databases only."""
        options = {'echo': config.get_boolean('DATABASE', 'echo', default=False)}
        if url.startswith("sqlite"):
            return options

        options.update(
            pool_size=config.get_int('DATABASE', 'pool_size', default=5),
            max_overflow=config.get_int('DATABASE', 'max_overflow', default=10),
            pool_timeout=config.get_int('DATABASE', 'pool_timeout', default=30),
            pool_recycle=config.get_int('DATABASE', 'pool_recycle', default=1800),
            pool_pre_ping=True
        )
        return options

    @staticmethod
    def get_supabase_config() -> Dict[str, str]:
        """Get Supabase connection configuration."""
        # Try environment variables first
        if os.getenv('SUPABASE_URL') and os.getenv('SUPABASE_KEY'):
            return {
                'url': os.getenv('SUPABASE_URL'),
                'key': os.getenv('SUPABASE_KEY')
            }

        # Fall back to config file
        return {
            'url': config.get('SUPABASE', 'url', default=''),
            'key': config.get('SUPABASE', 'key', default='')
        }

class DatabaseConnection:
    """Unified database connection handler for SQL databases and Supabase.

    The connection is opened on first use, not on import.
    """

    _instance = None
    _engine = None
    _SessionLocal = None
    _supabase = None
    _db_type: DatabaseType = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def initialize(self, connection_string: str = None):
        """Open the configured connection.

        Args:
            connection_string: Optional SQLAlchemy URL overriding configuration
        """
        if connection_string is not None:
            db_type = "sqlite" if connection_string.startswith("sqlite") else "postgresql"
        else:
            db_type = DatabaseConfig.get_db_type()

        if db_type == "supabase":
            self._initialize_supabase()
        elif db_type in ("postgresql", "sqlite"):
            self._initialize_sql(connection_string or config.get_db_url())
        else:
            raise DatabaseError(f"Unknown database type: {db_type}")

        # Only recorded once the connection is usable
        self._db_type = db_type

    def _ensure_initialized(self):
        if self._db_type is None:
            self.initialize()

    def _initialize_sql(self, connection_string: str):
        """Initialize a SQLAlchemy engine and session factory."""
        try:
            self._engine = create_engine(connection_string, **DatabaseConfig.engine_options(connection_string))

            self._SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self._engine
            )

            self._test_sql_connection()

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to initialize database connection: {str(e)}")

    def _initialize_supabase(self):
        """Initialize Supabase connection."""
        supabase_config = DatabaseConfig.get_supabase_config()

        if not supabase_config['url'] or not supabase_config['key']:
            raise DatabaseError("Supabase URL and key must be provided")

        try:
            self._supabase = create_client(
                supabase_config['url'],
                supabase_config['key']
            )
        except Exception as e:
            raise DatabaseError(f"Failed to initialize Supabase connection: {str(e)}")

    def _test_sql_connection(self):
        """Test SQL connection."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            raise DatabaseError(f"Database connection test failed: {str(e)}")

    @contextmanager
    def session_scope(self) -> Session:
        """Provide transaction scope for database operations."""
        self._ensure_initialized()
        if self._db_type == "supabase":
            raise DatabaseError("session_scope is only available for SQL connections")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_supabase(self) -> Client:
        """Get Supabase client (Supabase only)."""
        self._ensure_initialized()
        if self._db_type != "supabase":
            raise DatabaseError("get_supabase is only available for Supabase connections")

        return self._supabase

    @property
    def engine(self):
        """Get SQLAlchemy engine (SQL connections only)."""
        self._ensure_initialized()
        if self._db_type == "supabase":
            raise DatabaseError("engine is only available for SQL connections")

        return self._engine

    @property
    def db_type(self) -> DatabaseType:
        """Get current database type."""
        self._ensure_initialized()
        return self._db_type

# Singleton instance
db = DatabaseConnection()

@contextmanager
def session_scope():
    """Context manager for database sessions."""
    with db.session_scope() as session:
        yield session
