"""
SQLAlchemy ORM models for persistence.
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, Float, Index, Integer, JSON, String

from db import Base


class CoffeePlaceORM(Base):
    __tablename__ = "coffee_places"

    id = Column(String, primary_key=True, index=True)
    google_place_id = Column(String, nullable=False, unique=True, index=True)

    # Canonical subset, written by Discover
    name_en = Column(String, nullable=True)
    name_ar = Column(String, nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    rating = Column(Float, nullable=True)
    review_count = Column(Integer, nullable=True)
    photo_reference = Column(String, nullable=True)
    city_en = Column(String, nullable=True)
    city_ar = Column(String, nullable=True)
    country = Column(String(2), nullable=True)
    nearby_synced_at = Column(DateTime, nullable=True)

    # Detail-only fields; owned by the place-details path, never written by Discover
    address_en = Column(String, nullable=True)
    address_ar = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    website = Column(String, nullable=True)
    opening_hours = Column(JSON, nullable=True)
    price_level = Column(Integer, nullable=True)
    last_fetched_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_coffee_places_lat_lng", "lat", "lng"),)
