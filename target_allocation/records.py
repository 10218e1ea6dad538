# target_allocation/records.py
"""Immutable value records shared by the allocation pipeline."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional
import enum


def freeze_mapping(mapping) -> Mapping:
    """Read-only copy of a mapping; later edits to the source do not show through."""
    return MappingProxyType(dict(mapping or {}))


class Dimension(enum.Enum):
    """Grouping dimension a weight set or allocation is keyed by.

    Values are the column names used by the import files.
    """
    STORE = 'loja'
    CITY = 'cidade'
    STATE = 'estado'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'Dimension':
        """Create a Dimension from its import column name or enum name.

        Raises:
            ValueError if the string value is not valid
        """
        text = (value or '').strip()
        for member in cls:
            if text.lower() in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Invalid dimension: {value}. Valid values are: loja, cidade, estado")

    def key_of(self, record) -> str:
        """Return the group key of a record for this dimension ('' if absent)."""
        if self is Dimension.STORE:
            return record.store
        if self is Dimension.CITY:
            return record.city or ''
        return record.state or ''


class WeightStrategy(enum.Enum):
    HISTORICAL = 'historico'
    EQUAL = 'igualitario'
    CUSTOM = 'personalizado'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'WeightStrategy':
        text = (value or '').strip()
        for member in cls:
            if text.lower() in (member.value, member.name.lower()):
                return member
        raise ValueError(
            f"Invalid weight strategy: {value}. Valid values are: historico, igualitario, personalizado"
        )


class ScenarioStatus(enum.Enum):
    DRAFT = 'DRAFT'
    LOCKED = 'LOCKED'


@dataclass(frozen=True)
class HistoricalRecord:
    year: int
    month: int
    store: str
    amount: Decimal
    city: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class ActualRecord:
    day: date
    store: str
    amount: Decimal
    city: Optional[str] = None
    state: Optional[str] = None

    @property
    def year(self) -> int:
        return self.day.year

    @property
    def month(self) -> int:
        return self.day.month


@dataclass(frozen=True)
class IndexParameters:
    """Economic indices feeding the composite rate, all as fractions."""
    inflation_rate: float = 0.0
    regulated_price_index: float = 0.0
    category_participation: float = 0.0
    growth_rate: float = 0.0


@dataclass(frozen=True)
class AnnualTarget:
    year: int
    amount: int
    baseline_total: Decimal = Decimal('0')
    composite_rate: float = 0.0


@dataclass(frozen=True)
class MonthlyAllocation:
    month: int
    amount: int


@dataclass(frozen=True)
class Weight:
    dimension: Dimension
    key: str
    value: float


@dataclass(frozen=True)
class GroupAllocation:
    month: int
    group_key: str
    amount: int


@dataclass(frozen=True)
class StoreAllocation:
    """Store-month target; the row shape handed to persistence."""
    month: int
    store: str
    amount: int
    group_key: str = ''
    city: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class WeekAllocation:
    group_key: str
    month: int
    week_index: int
    start_date: date
    end_date: date
    day_count: int
    amount: int


@dataclass(frozen=True)
class CalendarConfig:
    """Target year plus optional per-month selling-day overrides."""
    year: Optional[int] = None
    selling_days: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'selling_days', freeze_mapping(self.selling_days))
