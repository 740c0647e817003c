"""
Short Link Models
Redirect links, their aliases and click analytics
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .config import PUBLIC_BASE_URL
from .database import Base


class ShortLink(Base):
    __tablename__ = "short_links"

    id = Column(Integer, primary_key=True, index=True)
    short_code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(120), nullable=True)
    destination_url = Column(Text, nullable=False, index=True)
    # loyalty_portal, promotion, reward_redemption, custom, booking_confirmation
    link_type = Column(String(30), default="custom", nullable=False)
    link_metadata = Column("metadata", JSON, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    click_count = Column(Integer, default=0, nullable=False)
    last_clicked_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    aliases = relationship("ShortLinkAlias", back_populates="short_link", cascade="all, delete-orphan")
    clicks = relationship("ShortLinkClick", back_populates="short_link", cascade="all, delete-orphan")

    @property
    def full_url(self) -> str:
        return f"{PUBLIC_BASE_URL.rstrip('/')}/l/{self.short_code}"


class ShortLinkAlias(Base):
    __tablename__ = "short_link_aliases"

    id = Column(Integer, primary_key=True, index=True)
    short_link_id = Column(Integer, ForeignKey("short_links.id", ondelete="CASCADE"), nullable=False)
    alias_code = Column(String(20), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    short_link = relationship("ShortLink", back_populates="aliases")


class ShortLinkClick(Base):
    __tablename__ = "short_link_clicks"

    id = Column(Integer, primary_key=True, index=True)
    short_link_id = Column(Integer, ForeignKey("short_links.id", ondelete="CASCADE"), nullable=False, index=True)
    clicked_at = Column(DateTime, server_default=func.now(), index=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    country = Column(String(2), nullable=True)
    device_type = Column(String(20), nullable=True)  # mobile, tablet, desktop, bot
    browser = Column(String(30), nullable=True)

    short_link = relationship("ShortLink", back_populates="clicks")
