"""
Opening hours and service status models
Weekly hours, date-specific overrides and per-service availability switches
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class BusinessHours(Base):
    """Regular weekly opening hours, one row per day"""

    __tablename__ = "business_hours"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, unique=True, nullable=False)  # 0 = Sunday .. 6 = Saturday
    opens = Column(String(5), nullable=True)  # HH:MM
    closes = Column(String(5), nullable=True)  # HH:MM, 00:00 means midnight
    kitchen_opens = Column(String(5), nullable=True)
    kitchen_closes = Column(String(5), nullable=True)
    is_closed = Column(Boolean, default=False, nullable=False)
    is_kitchen_closed = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SpecialHours(Base):
    """Hours for a single date that replace the weekly row"""

    __tablename__ = "special_hours"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    opens = Column(String(5), nullable=True)
    closes = Column(String(5), nullable=True)
    kitchen_opens = Column(String(5), nullable=True)
    kitchen_closes = Column(String(5), nullable=True)
    is_closed = Column(Boolean, default=False, nullable=False)
    is_kitchen_closed = Column(Boolean, default=False, nullable=False)
    note = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ServiceStatus(Base):
    """Global on/off switch for a guest-facing service (e.g. table_bookings)"""

    __tablename__ = "service_statuses"

    id = Column(Integer, primary_key=True, index=True)
    service_code = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    message = Column(Text, nullable=True)  # Shown to guests while disabled
    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ServiceStatusOverride(Base):
    """Date range where a service's status differs from the global switch"""

    __tablename__ = "service_status_overrides"

    id = Column(Integer, primary_key=True, index=True)
    service_code = Column(String(50), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_enabled = Column(Boolean, default=False, nullable=False)
    message = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
