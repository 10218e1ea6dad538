# target_allocation/services/persistence_service.py
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from target_allocation.exceptions import PersistenceError
from target_allocation.logging_setup import get_logger
from target_allocation.models import MonthlyTarget, Store
from target_allocation.records import StoreAllocation

logger = get_logger('persistence')

STORES_TABLE = 'lojas'
TARGETS_TABLE = 'metas_mensais'
TARGETS_CONFLICT_KEY = 'ano,mes,loja_id'

class TargetRepository(ABC):
    """Storage collaborator receiving consolidated store-month targets.

    ``save_targets`` is one batch: it either writes every row or raises
    PersistenceError.
    """

    @abstractmethod
    def ensure_stores(self, stores: Mapping[str, Mapping[str, Optional[str]]]) -> Dict[str, Any]:
        """Create missing stores and return store name -> store id."""
        pass

    @abstractmethod
    def upsert_monthly_targets(self, rows: List[Dict[str, Any]]) -> int:
        """Insert or overwrite rows keyed by (year, month, store_id)."""
        pass

    def save_targets(self, year: int, allocations: Iterable[StoreAllocation], locked: bool = True) -> int:
        """Persist the store-month targets of one plan.

        Args:
            year: Target year
            allocations: Store allocations of the plan
            locked: Value of the locked flag on every row

        Returns:
            Number of rows written
        """
        allocations = list(allocations)
        directory = OrderedDict()
        for alloc in allocations:
            directory.setdefault(alloc.store, {'city': alloc.city, 'state': alloc.state})

        store_ids = self.ensure_stores(directory)

        rows = [
            {
                'year': year,
                'month': alloc.month,
                'store_id': store_ids[alloc.store],
                'amount': int(alloc.amount),
                'locked': locked
            }
            for alloc in allocations
        ]

        count = self.upsert_monthly_targets(rows)
        logger.info(f"Persisted {count} monthly targets for {year} ({len(store_ids)} stores)")
        return count

class SqlAlchemyTargetRepository(TargetRepository):
    """Repository over a SQLAlchemy session (PostgreSQL or SQLite).

    Rows are flushed, not committed; the caller's session scope owns the
    transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def ensure_stores(self, stores):
        names = list(stores.keys())
        try:
            existing = {
                s.name: s for s in self.session.query(Store).filter(Store.name.in_(names)).all()
            } if names else {}

            for name in names:
                info = stores[name] or {}
                store = existing.get(name)
                if store is None:
                    store = Store(name=name, city=info.get('city'), state=info.get('state'))
                    self.session.add(store)
                    existing[name] = store
                    logger.debug(f"Creating store {name}")
                else:
                    if not store.city and info.get('city'):
                        store.city = info.get('city')
                    if not store.state and info.get('state'):
                        store.state = info.get('state')

            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to save stores: {str(e)}")

        return {name: existing[name].id for name in names}

    def upsert_monthly_targets(self, rows):
        if not rows:
            return 0

        dialect = self.session.get_bind().dialect.name
        try:
            if dialect in ('postgresql', 'sqlite'):
                self._upsert_statement(dialect, rows)
            else:
                self._upsert_each(rows)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f"Failed to save monthly targets: {str(e)}")

        return len(rows)

    def _upsert_statement(self, dialect: str, rows: List[Dict[str, Any]]):
        table = MonthlyTarget.__table__
        insert = postgresql.insert if dialect == 'postgresql' else sqlite.insert

        stmt = insert(table).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.year, table.c.month, table.c.store_id],
            set_={
                table.c.amount: stmt.excluded.amount,
                table.c.locked: stmt.excluded.locked,
                table.c.updated_at: func.now()
            }
        )
        self.session.execute(stmt)

    def _upsert_each(self, rows: List[Dict[str, Any]]):
        for row in rows:
            target = self.session.query(MonthlyTarget).filter(
                MonthlyTarget.year == row['year'],
                MonthlyTarget.month == row['month'],
                MonthlyTarget.store_id == row['store_id']
            ).first()

            if target is None:
                self.session.add(MonthlyTarget(**row))
            else:
                target.amount = row['amount']
                target.locked = row['locked']

class SupabaseTargetRepository(TargetRepository):
    """Repository over a Supabase client using the lojas / metas_mensais tables."""

    def __init__(self, client):
        """Initialize with Supabase client."""
        self.client = client

    @staticmethod
    def _check(result, action: str):
        if hasattr(result, 'error') and result.error:
            raise PersistenceError(f"Supabase {action} error: {result.error}")
        return result.data if result.data else []

    def ensure_stores(self, stores):
        names = list(stores.keys())
        if not names:
            return {}

        try:
            result = self.client.table(STORES_TABLE).select('id,nome').in_('nome', names).execute()
            store_ids = {row['nome']: row['id'] for row in self._check(result, 'query')}

            missing = [
                {
                    'nome': name,
                    'cidade': (stores[name] or {}).get('city'),
                    'estado': (stores[name] or {}).get('state')
                }
                for name in names if name not in store_ids
            ]
            if missing:
                result = self.client.table(STORES_TABLE).insert(missing).execute()
                for row in self._check(result, 'insert'):
                    store_ids[row['nome']] = row['id']
                logger.info(f"Created {len(missing)} stores")
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save stores: {str(e)}")

        not_found = [n for n in names if n not in store_ids]
        if not_found:
            raise PersistenceError(f"Stores were not created: {', '.join(not_found)}")

        return {name: store_ids[name] for name in names}

    def upsert_monthly_targets(self, rows):
        if not rows:
            return 0

        payload = [
            {
                'ano': row['year'],
                'mes': row['month'],
                'loja_id': row['store_id'],
                'meta': row['amount'],
                'locked': row['locked']
            }
            for row in rows
        ]

        try:
            result = self.client.table(TARGETS_TABLE).upsert(
                payload, on_conflict=TARGETS_CONFLICT_KEY
            ).execute()
            self._check(result, 'upsert')
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save monthly targets: {str(e)}")

        return len(rows)

def get_target_repository(connection=None) -> TargetRepository:
    """Repository for the configured database.

    Args:
        connection: Supabase client or SQLAlchemy session; when omitted the
            configured connection is used (Supabase only, SQL callers pass
            their session)
    """
    if connection is None:
        from target_allocation.db import db
        return SupabaseTargetRepository(db.get_supabase())

    if isinstance(connection, Session):
        return SqlAlchemyTargetRepository(connection)

    return SupabaseTargetRepository(connection)
