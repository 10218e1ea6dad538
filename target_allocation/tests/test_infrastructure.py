"""
Tests for configuration, the exception hierarchy and the database connection.
"""
import unittest
from unittest.mock import patch

from target_allocation.config import config
from target_allocation.db.connection import DatabaseConnection, DatabaseConfig
from target_allocation.exceptions import (
    AllocationError, DatabaseError, PersistenceError, WeightValidationError, ScenarioLockedError
)
from target_allocation.models import MonthlyTarget
from target_allocation.records import Dimension, WeightStrategy


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        self.assertIn(config.allocation_config['currency_scale'], (1, 100))
        self.assertEqual(set(config.index_defaults), {
            'inflation_rate', 'regulated_price_index', 'category_participation', 'growth_rate'
        })

    def test_missing_values_fall_back(self):
        self.assertEqual(config.get('NOPE', 'missing', default='x'), 'x')
        self.assertEqual(config.get_int('NOPE', 'missing', default=3), 3)
        self.assertEqual(config.get_float('NOPE', 'missing', default=0.5), 0.5)

    def test_explicit_url_used_verbatim(self):
        with patch.object(config, 'get', side_effect=lambda s, k, d=None: 'sqlite:///t.db' if k == 'url' else d):
            self.assertEqual(config.get_db_url(), 'sqlite:///t.db')


class TestExceptions(unittest.TestCase):

    def test_str_and_dict(self):
        error = AllocationError("boom", code='E1', details={'a': 1})

        self.assertEqual(str(error), "[E1] boom")
        self.assertEqual(error.to_dict(), {
            'error': 'AllocationError', 'message': 'boom', 'code': 'E1', 'details': {'a': 1}
        })

    def test_weight_error_carries_sum(self):
        error = WeightValidationError("bad", details={'actual_sum': 0.9})

        self.assertEqual(error.actual_sum, 0.9)
        self.assertEqual(error.code, 'WEIGHT_SUM')

    def test_persistence_error_retryable(self):
        error = PersistenceError("down")

        self.assertTrue(error.to_dict()['retryable'])
        self.assertFalse(PersistenceError("bad data", retryable=False).retryable)

    def test_locked_default_message(self):
        self.assertEqual(str(ScenarioLockedError()), "[SCENARIO_LOCKED] Scenario is locked")


class TestEnums(unittest.TestCase):

    def test_dimension_from_string(self):
        self.assertIs(Dimension.from_string('cidade'), Dimension.CITY)
        self.assertIs(Dimension.from_string('STATE'), Dimension.STATE)
        with self.assertRaises(ValueError):
            Dimension.from_string('bairro')

    def test_strategy_from_string(self):
        self.assertIs(WeightStrategy.from_string('igualitario'), WeightStrategy.EQUAL)
        self.assertIs(WeightStrategy.from_string('custom'), WeightStrategy.CUSTOM)


class TestDatabaseConnection(unittest.TestCase):

    def setUp(self):
        self.connection = DatabaseConnection()
        self.connection.initialize('sqlite://')

    def test_singleton(self):
        self.assertIs(DatabaseConnection(), self.connection)

    def test_sqlite_session_scope(self):
        from target_allocation.db import create_all_tables, drop_all_tables

        create_all_tables()
        with self.connection.session_scope() as session:
            self.assertEqual(session.query(MonthlyTarget).count(), 0)
        drop_all_tables()

        self.assertEqual(self.connection.db_type, 'sqlite')

    def test_supabase_only_calls_rejected_for_sql(self):
        with self.assertRaises(DatabaseError):
            self.connection.get_supabase()

    def test_supabase_requires_credentials(self):
        with patch.object(DatabaseConfig, 'get_supabase_config', return_value={'url': '', 'key': ''}):
            with self.assertRaises(DatabaseError):
                self.connection._initialize_supabase()

    def test_session_scope_rolls_back(self):
        with self.assertRaises(ValueError):
            with self.connection.session_scope():
                raise ValueError("fail")


if __name__ == '__main__':
    unittest.main()
