"""
SMS Models
Outbound/inbound message log and reusable message templates
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Message(Base):
    """Every SMS sent, blocked or received"""

    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    direction = Column(String(10), default="outbound", nullable=False)  # outbound, inbound
    to_number = Column(String(20), nullable=False, index=True)
    from_number = Column(String(20), nullable=True)
    body = Column(Text, nullable=False)
    segments = Column(Integer, default=1, nullable=False)

    # queued, sent, failed, blocked, received
    status = Column(String(20), nullable=False)
    message_type = Column(String(50), nullable=True)  # booking_confirmation, loyalty_welcome, bulk ...
    template_key = Column(String(100), nullable=True)
    dedupe_key = Column(String(64), nullable=True, index=True)

    twilio_sid = Column(String(64), nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)

    customer = relationship("Customer", back_populates="messages")


class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)  # {{variable}} placeholders
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
