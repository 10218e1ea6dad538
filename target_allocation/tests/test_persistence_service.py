"""
Tests for the target repositories.
"""
import unittest
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from target_allocation.exceptions import PersistenceError
from target_allocation.models import Base, MonthlyTarget, Store
from target_allocation.records import StoreAllocation
from target_allocation.services.persistence_service import (
    SqlAlchemyTargetRepository, SupabaseTargetRepository, get_target_repository
)


def _allocations(amount_a=100, amount_b=200):
    return [
        StoreAllocation(month=1, store='Loja Centro', amount=amount_a, group_key='Recife',
                        city='Recife', state='PE'),
        StoreAllocation(month=1, store='Loja Natal', amount=amount_b, group_key='Natal',
                        city='Natal', state='RN'),
        StoreAllocation(month=2, store='Loja Centro', amount=amount_a + 1, group_key='Recife',
                        city='Recife', state='PE'),
    ]


class TestSqlAlchemyTargetRepository(unittest.TestCase):

    def setUp(self):
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine)()
        self.repository = SqlAlchemyTargetRepository(self.session)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def _amounts(self):
        rows = (
            self.session.query(Store.name, MonthlyTarget.month, MonthlyTarget.amount, MonthlyTarget.locked)
            .select_from(MonthlyTarget)
            .join(Store, MonthlyTarget.store_id == Store.id)
            .order_by(MonthlyTarget.month, Store.name)
            .all()
        )
        return [tuple(row) for row in rows]

    def test_save_creates_stores_and_targets(self):
        count = self.repository.save_targets(2025, _allocations())
        self.session.commit()

        self.assertEqual(count, 3)
        stores = {s.name: s for s in self.session.query(Store).all()}
        self.assertEqual(set(stores), {'Loja Centro', 'Loja Natal'})
        self.assertEqual(stores['Loja Natal'].state, 'RN')
        self.assertEqual(self._amounts(), [
            ('Loja Centro', 1, 100, True),
            ('Loja Natal', 1, 200, True),
            ('Loja Centro', 2, 101, True),
        ])

    def test_resave_overwrites_same_year_month_store(self):
        self.repository.save_targets(2025, _allocations())
        self.repository.save_targets(2025, _allocations(amount_a=150), locked=False)
        self.session.commit()

        self.assertEqual(self.session.query(MonthlyTarget).count(), 3)
        self.assertEqual(self.session.query(Store).count(), 2)
        self.assertEqual(self._amounts(), [
            ('Loja Centro', 1, 150, False),
            ('Loja Natal', 1, 200, False),
            ('Loja Centro', 2, 151, False),
        ])

    def test_other_year_is_a_new_row(self):
        self.repository.save_targets(2025, _allocations())
        self.repository.save_targets(2026, _allocations())
        self.session.commit()

        self.assertEqual(self.session.query(MonthlyTarget).count(), 6)

    def test_existing_store_reused(self):
        self.session.add(Store(name='Loja Centro'))
        self.session.commit()

        ids = self.repository.ensure_stores({'Loja Centro': {'city': 'Recife', 'state': 'PE'}})
        store = self.session.query(Store).filter(Store.name == 'Loja Centro').one()

        self.assertEqual(ids, {'Loja Centro': store.id})
        self.assertEqual(store.city, 'Recife')

    def test_row_by_row_upsert(self):
        ids = self.repository.ensure_stores({'Loja Centro': {}})
        row = {'year': 2025, 'month': 3, 'store_id': ids['Loja Centro'], 'amount': 10, 'locked': True}

        self.repository._upsert_each([row])
        self.repository._upsert_each([dict(row, amount=20)])
        self.session.commit()

        self.assertEqual(self._amounts(), [('Loja Centro', 3, 20, True)])

    def test_empty_batch(self):
        self.assertEqual(self.repository.save_targets(2025, []), 0)

    def test_database_error_is_retryable(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = 'sqlite'
        session.execute.side_effect = OperationalError('INSERT', {}, Exception('database is locked'))

        repository = SqlAlchemyTargetRepository(session)
        with self.assertRaises(PersistenceError) as ctx:
            repository.upsert_monthly_targets([
                {'year': 2025, 'month': 1, 'store_id': 'x', 'amount': 1, 'locked': True}
            ])

        self.assertTrue(ctx.exception.retryable)
        session.rollback.assert_called_once()


class TestSupabaseTargetRepository(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.table = self.client.table.return_value
        self.table.select.return_value.in_.return_value.execute.return_value = MagicMock(
            data=[{'id': 'id-centro', 'nome': 'Loja Centro'}], error=None
        )
        self.table.insert.return_value.execute.return_value = MagicMock(
            data=[{'id': 'id-natal', 'nome': 'Loja Natal'}], error=None
        )
        self.table.upsert.return_value.execute.return_value = MagicMock(data=[{}], error=None)
        self.repository = SupabaseTargetRepository(self.client)

    def test_missing_stores_created(self):
        self.repository.save_targets(2025, _allocations())

        self.table.select.assert_called_once_with('id,nome')
        self.table.select.return_value.in_.assert_called_once_with('nome', ['Loja Centro', 'Loja Natal'])
        self.table.insert.assert_called_once_with(
            [{'nome': 'Loja Natal', 'cidade': 'Natal', 'estado': 'RN'}]
        )

    def test_upsert_payload_and_conflict_key(self):
        count = self.repository.save_targets(2025, _allocations())

        self.assertEqual(count, 3)
        args, kwargs = self.table.upsert.call_args
        self.assertEqual(kwargs['on_conflict'], 'ano,mes,loja_id')
        self.assertEqual(args[0][0], {
            'ano': 2025, 'mes': 1, 'loja_id': 'id-centro', 'meta': 100, 'locked': True
        })
        self.assertEqual(args[0][1]['loja_id'], 'id-natal')

    def test_upsert_failure_is_retryable(self):
        self.table.upsert.return_value.execute.side_effect = Exception('timeout')

        with self.assertRaises(PersistenceError) as ctx:
            self.repository.save_targets(2025, _allocations())

        self.assertTrue(ctx.exception.retryable)

    def test_error_in_response(self):
        self.table.upsert.return_value.execute.return_value = MagicMock(data=None, error='conflict')

        with self.assertRaises(PersistenceError):
            self.repository.save_targets(2025, _allocations())


class TestGetTargetRepository(unittest.TestCase):

    def test_session_gives_sql_repository(self):
        session = sessionmaker(bind=create_engine('sqlite://'))()

        self.assertIsInstance(get_target_repository(session), SqlAlchemyTargetRepository)

    def test_client_gives_supabase_repository(self):
        self.assertIsInstance(get_target_repository(MagicMock()), SupabaseTargetRepository)


if __name__ == '__main__':
    unittest.main()
