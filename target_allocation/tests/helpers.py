"""
Shared sample data for the test modules.
"""
from decimal import Decimal

from target_allocation.core.series import HistoricalSeries
from target_allocation.records import HistoricalRecord

STORES = (
    ('Loja Centro', 'Recife', 'PE'),
    ('Loja Boa Viagem', 'Recife', 'PE'),
    ('Loja Natal', 'Natal', 'RN'),
)

def sample_records():
    """Two years of monthly sales for three stores in two cities."""
    records = []
    for year, factor in ((2023, Decimal('0.9')), (2024, Decimal('1'))):
        for month in range(1, 13):
            amounts = (
                Decimal(5000 + 100 * month),
                Decimal(3000 + 50 * month),
                Decimal(2000 + (500 if month == 12 else 0)),
            )
            for (store, city, state), amount in zip(STORES, amounts):
                records.append(HistoricalRecord(
                    year=year,
                    month=month,
                    store=store,
                    amount=(amount * factor).quantize(Decimal('0.01')),
                    city=city,
                    state=state
                ))
    return records

def sample_series():
    return HistoricalSeries(sample_records())

def million_series():
    """Single store, baseline total 1,000,000 with January at 8%."""
    amounts = {1: 80000, 12: 90000}
    records = [
        HistoricalRecord(year=2024, month=m, store='Loja Unica', amount=Decimal(amounts.get(m, 83000)))
        for m in range(1, 13)
    ]
    return HistoricalSeries(records)

def three_store_series():
    """Baseline amounts 50,000 / 30,000 / 20,000 in one month."""
    return HistoricalSeries([
        HistoricalRecord(year=2024, month=1, store='A', amount=Decimal('50000'), city='X', state='S1'),
        HistoricalRecord(year=2024, month=1, store='B', amount=Decimal('30000'), city='X', state='S1'),
        HistoricalRecord(year=2024, month=1, store='C', amount=Decimal('20000'), city='Y', state='S2'),
    ])
