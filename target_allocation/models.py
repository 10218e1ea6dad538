# target_allocation/models.py
"""ORM mapping of the stores and monthly-target tables.

Column names follow the storage contract shared with the dashboard
backend (lojas / metas_mensais); attribute keys are English.
"""
import uuid

from sqlalchemy import (
    Column, Integer, BigInteger, String, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

def _new_id():
    return str(uuid.uuid4())

class Store(Base):
    __tablename__ = 'lojas'

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column('nome', String(255), key='name', nullable=False, unique=True)
    city = Column('cidade', String(120), key='city')
    state = Column('estado', String(60), key='state')
    created_at = Column(DateTime, server_default=func.now())

    targets = relationship("MonthlyTarget", back_populates="store")

    def __repr__(self):
        return f"<Store(name='{self.name}', city='{self.city}', state='{self.state}')>"

class MonthlyTarget(Base):
    __tablename__ = 'metas_mensais'

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column('ano', Integer, key='year', nullable=False)
    month = Column('mes', Integer, key='month', nullable=False)
    store_id = Column('loja_id', String(36), ForeignKey('lojas.id'), key='store_id', nullable=False)
    amount = Column('meta', BigInteger, key='amount', nullable=False, default=0)
    locked = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # upsert conflict key
    __table_args__ = (
        UniqueConstraint(year, month, store_id, name='uq_metas_mensais_ano_mes_loja'),
    )

    store = relationship("Store", back_populates="targets")

    def __repr__(self):
        return f"<MonthlyTarget(year={self.year}, month={self.month}, store_id='{self.store_id}', amount={self.amount})>"
