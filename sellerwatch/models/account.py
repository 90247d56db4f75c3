"""Seller account models."""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from sellerwatch.database import Base
from .base import id_default, utcnow


class Account(Base):
    """A seller using SellerWatch."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True, default=id_default("acct"))
    email = Column(String, unique=True, nullable=False, index=True)
    first_name = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    # Missing preference means subscribed
    subscribed_to_alerts = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    marketplaces = relationship(
        "SellerMarketplace", back_populates="account", cascade="all, delete-orphan"
    )


class SellerMarketplace(Base):
    """A region/country pair connected for an account."""

    __tablename__ = "seller_marketplaces"

    id = Column(String, primary_key=True, default=id_default("mkt"))
    account_id = Column(String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    region = Column(String, nullable=True)   # NA, EU, FE
    country = Column(String, nullable=True)  # US, UK, DE, ...

    account = relationship("Account", back_populates="marketplaces")
