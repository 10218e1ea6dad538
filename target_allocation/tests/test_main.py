"""
Command line smoke tests.
"""
import argparse
import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr

from target_allocation.main import main, _parse_pairs

HISTORY = "ano;mes;loja;cidade;estado;venda_total\n" + "".join(
    f"2024;{month};Loja {name};{city};{state};{amount}\n"
    for month in range(1, 13)
    for name, city, state, amount in (
        ('Centro', 'Recife', 'PE', '10.000,00'),
        ('Natal', 'Natal', 'RN', '5.000,00'),
    )
)

ACTUALS = (
    "data;loja;cidade;estado;venda_total\n"
    "2025-01-03;Loja Centro;Recife;PE;4.000,00\n"
    "2025-01-04;Loja Natal;Natal;RN;1.500,00\n"
)


class TestMain(unittest.TestCase):

    def setUp(self):
        self.paths = []
        self.history = self._write(HISTORY)

    def tearDown(self):
        for path in self.paths:
            os.remove(path)

    def _write(self, text):
        fd, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        self.paths.append(path)
        return path

    def _run(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_plan(self):
        code, out, _ = self._run(['plan', '--history', self.history, '--growth', '0.1', '--weeks'])

        self.assertEqual(code, 0)
        self.assertIn('Annual target 2025', out)
        self.assertIn('Loja Centro', out)

    def test_plan_by_state_with_custom_weights(self):
        code, out, _ = self._run([
            'plan', '--history', self.history, '--dimension', 'estado',
            '--strategy', 'personalizado', '--weights', 'PE=0.7,RN=0.3'
        ])

        self.assertEqual(code, 0)
        self.assertIn('70.00%', out)

    def test_invalid_custom_weights_fail(self):
        code, _, err = self._run([
            'plan', '--history', self.history, '--dimension', 'estado',
            '--strategy', 'personalizado', '--weights', 'PE=0.7,RN=0.2'
        ])

        self.assertEqual(code, 1)
        self.assertIn('Error', err)

    def test_compare(self):
        code, out, _ = self._run(['compare', '--history', self.history, '--growth', '0.2'])

        self.assertEqual(code, 0)
        self.assertIn('Total', out)

    def test_track(self):
        actuals = self._write(ACTUALS)
        code, out, _ = self._run([
            'track', '--history', self.history, '--actuals', actuals, '--group-by', 'estado'
        ])

        self.assertEqual(code, 0)
        self.assertIn('Year', out)
        self.assertIn('PE', out)

    def test_no_command(self):
        code, _, _ = self._run([])

        self.assertEqual(code, 1)


class TestParsePairs(unittest.TestCase):

    def test_pairs(self):
        self.assertEqual(_parse_pairs('1=20, 2=18', int), {'1': 20, '2': 18})
        self.assertEqual(_parse_pairs(None, int), {})

    def test_malformed_pair(self):
        with self.assertRaises(argparse.ArgumentTypeError):
            _parse_pairs('1:20', int)


if __name__ == '__main__':
    unittest.main()
