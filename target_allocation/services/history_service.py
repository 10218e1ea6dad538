# target_allocation/services/history_service.py
import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, IO, List, Optional, Tuple, Union

from target_allocation.config import config
from target_allocation.core.series import HistoricalSeries
from target_allocation.exceptions import RecordImportError
from target_allocation.logging_setup import get_logger
from target_allocation.records import ActualRecord, HistoricalRecord
from target_allocation.utils.date_utils import convert_to_date
from target_allocation.utils.math_utils import parse_br_decimal

logger = get_logger('import')

HISTORY_COLUMNS = ('ano', 'mes', 'loja', 'venda_total')
ACTUALS_COLUMNS = ('data', 'loja', 'venda_total')
SNIFF_DELIMITERS = ',;\t'

Source = Union[str, Path, IO[str]]

@dataclass
class SkippedRow:
    line: int
    reason: str

@dataclass
class ImportResult:
    """Records parsed from one file plus the rows that were dropped."""
    records: list = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def summary(self) -> Dict:
        """Record count, distinct stores, year range and skipped rows."""
        years = sorted({r.year for r in self.records})
        stores = {r.store for r in self.records}
        return {
            'records': len(self.records),
            'stores': len(stores),
            'first_year': years[0] if years else None,
            'last_year': years[-1] if years else None,
            'skipped': self.skipped_count,
            'skipped_lines': [s.line for s in self.skipped]
        }

class HistoryService:
    """Service for importing historical and realized sales files.

    Malformed rows are skipped and counted; only an unreadable file or a
    header without the required columns fails the import.
    """

    def __init__(self, delimiter: Optional[str] = None, encoding: Optional[str] = None):
        import_config = config.import_config
        self.delimiter = delimiter or import_config['delimiter']
        self.encoding = encoding or import_config['encoding']

    def _read_text(self, source: Optional[Source], text: Optional[str]) -> str:
        if text is not None:
            return text
        if source is None:
            raise RecordImportError("Either a source or text must be given", code='NO_SOURCE')
        if hasattr(source, 'read'):
            return source.read()

        path = Path(source)
        try:
            # utf-8-sig drops the BOM spreadsheet exports add
            encoding = 'utf-8-sig' if self.encoding.lower().replace('_', '-') == 'utf-8' else self.encoding
            return path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise RecordImportError(f"Could not read {path}: {str(e)}")

    def _open_reader(self, text: str, required: Tuple[str, ...]) -> csv.DictReader:
        delimiter = self.delimiter
        if not delimiter:
            sample = text[:4096]
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=SNIFF_DELIMITERS).delimiter
            except csv.Error:
                delimiter = ','

        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        header = [(name or '').strip().lstrip('\ufeff').lower() for name in (reader.fieldnames or [])]
        missing = [c for c in required if c not in header]
        if missing:
            raise RecordImportError(
                f"Missing required columns: {', '.join(missing)}",
                code='MISSING_COLUMNS',
                details={'missing': missing, 'header': header}
            )
        reader.fieldnames = header
        return reader

    @staticmethod
    def _clean(row: Dict, column: str) -> str:
        value = row.get(column)
        return value.strip() if isinstance(value, str) else ''

    def _parse_amount(self, row: Dict) -> Tuple[Optional[object], str]:
        try:
            amount = parse_br_decimal(self._clean(row, 'venda_total'))
        except ValueError as e:
            return None, str(e)
        if amount < 0:
            return None, 'Negative amount'
        return amount, ''

    def _skip(self, result: ImportResult, line: int, reason: str):
        result.skipped.append(SkippedRow(line=line, reason=reason))
        logger.warning(f"Skipping line {line}: {reason}")

    def load_history(self, source: Optional[Source] = None, text: Optional[str] = None) -> ImportResult:
        """Parse a historical sales file.

        Columns: ano, mes, loja, venda_total; cidade and estado optional.

        Args:
            source: File path or file-like object
            text: The file's contents, instead of ``source``

        Returns:
            ImportResult with HistoricalRecord entries
        """
        reader = self._open_reader(self._read_text(source, text), HISTORY_COLUMNS)
        result = ImportResult()

        for row in reader:
            line = reader.line_num
            year_text = self._clean(row, 'ano')
            month_text = self._clean(row, 'mes')
            store = self._clean(row, 'loja')

            if not year_text or not month_text or not store:
                self._skip(result, line, 'Missing ano, mes or loja')
                continue

            try:
                year = int(year_text)
                month = int(month_text)
            except ValueError:
                self._skip(result, line, f"Invalid ano/mes: {year_text!r}/{month_text!r}")
                continue

            if month < 1 or month > 12:
                self._skip(result, line, f"Month out of range: {month}")
                continue

            amount, reason = self._parse_amount(row)
            if amount is None:
                self._skip(result, line, reason)
                continue

            result.records.append(HistoricalRecord(
                year=year,
                month=month,
                store=store,
                amount=amount,
                city=self._clean(row, 'cidade') or None,
                state=self._clean(row, 'estado') or None
            ))

        logger.info(
            f"Imported {len(result.records)} historical records "
            f"({result.skipped_count} rows skipped)"
        )
        return result

    def load_actuals(self, source: Optional[Source] = None, text: Optional[str] = None) -> ImportResult:
        """Parse a realized sales file.

        Columns: data (ISO date), loja, venda_total; cidade and estado
        optional.
        """
        reader = self._open_reader(self._read_text(source, text), ACTUALS_COLUMNS)
        result = ImportResult()

        for row in reader:
            line = reader.line_num
            day_text = self._clean(row, 'data')
            store = self._clean(row, 'loja')

            if not day_text or not store:
                self._skip(result, line, 'Missing data or loja')
                continue

            try:
                day = convert_to_date(day_text)
            except ValueError:
                self._skip(result, line, f"Invalid date: {day_text!r}")
                continue

            amount, reason = self._parse_amount(row)
            if amount is None:
                self._skip(result, line, reason)
                continue

            result.records.append(ActualRecord(
                day=day,
                store=store,
                amount=amount,
                city=self._clean(row, 'cidade') or None,
                state=self._clean(row, 'estado') or None
            ))

        logger.info(
            f"Imported {len(result.records)} actual records "
            f"({result.skipped_count} rows skipped)"
        )
        return result

    def load_series(
        self,
        source: Optional[Source] = None,
        text: Optional[str] = None
    ) -> Tuple[HistoricalSeries, ImportResult]:
        """Import a history file straight into a HistoricalSeries."""
        result = self.load_history(source, text)
        return HistoricalSeries(result.records), result
