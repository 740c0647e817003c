"""
Rota and Payroll Models
Employees, pay rates, weekly rotas, shifts, clock sessions and payroll approvals
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)  # E.164
    date_of_birth = Column(Date, nullable=True)
    job_title = Column(String(100), nullable=True)
    department = Column(String(50), nullable=True)  # bar, kitchen, floor, management
    is_salaried = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, former
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    rate_overrides = relationship(
        "EmployeeRateOverride", back_populates="employee", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PayAgeBand(Base):
    __tablename__ = "pay_age_bands"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(50), nullable=False)  # e.g. "21+", "18-20"
    min_age = Column(Integer, nullable=False)
    max_age = Column(Integer, nullable=True)  # null = no upper bound
    is_active = Column(Boolean, default=True, nullable=False)

    rates = relationship("PayBandRate", back_populates="band", cascade="all, delete-orphan")


class PayBandRate(Base):
    __tablename__ = "pay_band_rates"

    id = Column(Integer, primary_key=True, index=True)
    band_id = Column(Integer, ForeignKey("pay_age_bands.id", ondelete="CASCADE"), nullable=False)
    hourly_rate = Column(Float, nullable=False)
    effective_from = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    band = relationship("PayAgeBand", back_populates="rates")


class EmployeeRateOverride(Base):
    __tablename__ = "employee_rate_overrides"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    hourly_rate = Column(Float, nullable=False)
    effective_from = Column(Date, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    employee = relationship("Employee", back_populates="rate_overrides")


class RotaWeek(Base):
    __tablename__ = "rota_weeks"

    id = Column(Integer, primary_key=True, index=True)
    week_start = Column(Date, unique=True, nullable=False)  # Monday
    status = Column(String(20), default="draft", nullable=False)  # draft, published
    published_at = Column(DateTime, nullable=True)
    published_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    shifts = relationship("RotaShift", back_populates="week", cascade="all, delete-orphan")


class RotaShift(Base):
    __tablename__ = "rota_shifts"

    id = Column(Integer, primary_key=True, index=True)
    week_id = Column(Integer, ForeignKey("rota_weeks.id", ondelete="CASCADE"), nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)  # null = open shift
    shift_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    unpaid_break_minutes = Column(Integer, default=0, nullable=False)
    department = Column(String(50), nullable=True)
    is_overnight = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="scheduled", nullable=False)  # scheduled, sick, cancelled
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    week = relationship("RotaWeek", back_populates="shifts")
    employee = relationship("Employee")

    @property
    def employee_name(self):
        return self.employee.full_name if self.employee else None


class TimeclockSession(Base):
    __tablename__ = "timeclock_sessions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)
    clock_in_at = Column(DateTime, nullable=False)
    clock_out_at = Column(DateTime, nullable=True)
    is_auto_closed = Column(Boolean, default=False, nullable=False)
    linked_shift_id = Column(Integer, ForeignKey("rota_shifts.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    employee = relationship("Employee")


class PayrollPeriod(Base):
    """Custom period boundaries for a payroll month"""

    __tablename__ = "payroll_periods"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_payroll_period"),)

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)


class PayrollMonthApproval(Base):
    __tablename__ = "payroll_month_approvals"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_payroll_approval"),)

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    approved_at = Column(DateTime, server_default=func.now())
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    snapshot = Column(JSON, nullable=False)
