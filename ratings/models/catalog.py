"""
Catalog tables read by the scoring batch.

Owned and populated by the catalog build / price sync jobs; the scoring core
only ever SELECTs from them.
"""
from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from ratings.database import Base


class Flashlight(Base):
    __tablename__ = 'flashlights'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    model_code = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class FlashlightSpec(Base):
    __tablename__ = 'flashlight_specs'

    flashlight_id = Column(Integer, ForeignKey('flashlights.id'), primary_key=True)
    max_lumens = Column(Float, nullable=True)
    max_candela = Column(Float, nullable=True)
    beam_distance_m = Column(Float, nullable=True)
    runtime_medium_min = Column(Float, nullable=True)
    runtime_high_min = Column(Float, nullable=True)
    waterproof_rating = Column(Text, nullable=True)   # IPX8 / IP68 / ...
    impact_resistance_m = Column(Float, nullable=True)


class FlashlightPriceSnapshot(Base):
    __tablename__ = 'flashlight_price_snapshots'

    id = Column(Integer, primary_key=True, autoincrement=True)
    flashlight_id = Column(Integer, ForeignKey('flashlights.id'), nullable=False, index=True)
    price = Column(Float, nullable=False)
    currency_code = Column(Text, nullable=False, default='USD')
    captured_at = Column(DateTime(timezone=True), server_default=func.now())
