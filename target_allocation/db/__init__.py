# target_allocation/db/__init__.py
from .connection import DatabaseConnection, DatabaseConfig, db, session_scope

from target_allocation.exceptions import DatabaseError

def initialize(connection_string: str = None):
    """Initialize database connection and create tables if needed."""
    try:
        db.initialize(connection_string)
        if db.db_type != "supabase":
            create_all_tables()
        # Supabase tables are created through SQL migrations on the backend
    except DatabaseError:
        raise
    except Exception as e:
        raise DatabaseError(f"Database initialization failed: {str(e)}")

def get_db_type() -> str:
    """Get current database type."""
    return db.db_type

def create_all_tables():
    """Create all tables (SQL connections only)."""
    if db.db_type == "supabase":
        raise DatabaseError("create_all_tables is only available for SQL connections")

    from target_allocation.models import Base
    Base.metadata.create_all(bind=db.engine)

def drop_all_tables():
    """Drop all tables (SQL connections only)."""
    if db.db_type == "supabase":
        raise DatabaseError("drop_all_tables is only available for SQL connections")

    from target_allocation.models import Base
    Base.metadata.drop_all(bind=db.engine)

__all__ = [
    'db',
    'initialize',
    'session_scope',
    'get_db_type',
    'create_all_tables',
    'drop_all_tables',
    'DatabaseConnection',
    'DatabaseConfig'
]
