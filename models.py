# models.py
# SQLAlchemy models for wallet users and their verification / cash requests.

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime, timezone
from enum import Enum
import uuid


class RequestStatus(str, Enum):
    """Lifecycle of a verification or cash request"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


TERMINAL_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELED})


class VerificationKind(str, Enum):
    PERSON = "PERSON"
    INSTITUTION = "INSTITUTION"


class CashDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Wallet owner. Created on first submission, never deleted."""
    __tablename__ = "users"

    address = Column(String(42), primary_key=True)
    username = Column(String, nullable=True)
    email = Column(String, nullable=True)
    ens = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    verification_requests = relationship("VerificationRequest", back_populates="user")
    cash_requests = relationship("CashRequest", back_populates="user")


class VerificationRequest(Base):
    __tablename__ = "verification_requests"

    id = Column(String(32), primary_key=True, default=_new_id)
    address = Column(String(42), ForeignKey("users.address"), nullable=False, index=True)
    kind = Column(String(16), nullable=False)  # PERSON, INSTITUTION
    # Form values as serialized JSON text; decoded by crud on read
    fields = Column(Text, nullable=False, default="{}")
    status = Column(String(16), nullable=False, default=RequestStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="verification_requests")

    __table_args__ = (
        Index("ix_verification_requests_created_at", "created_at"),
    )


class CashRequest(Base):
    __tablename__ = "cash_requests"

    id = Column(String(32), primary_key=True, default=_new_id)
    address = Column(String(42), ForeignKey("users.address"), nullable=False, index=True)
    direction = Column(String(8), nullable=False)  # IN, OUT
    token = Column(String(16), nullable=False, default="ECOP")
    # Fixed-point integer amount as a decimal string (wei-style units)
    amount_wei = Column(String(78), nullable=False)
    bank_ref = Column(String, nullable=True)
    status = Column(String(16), nullable=False, default=RequestStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="cash_requests")

    __table_args__ = (
        Index("ix_cash_requests_created_at", "created_at"),
        Index("ix_cash_requests_direction_status", "direction", "status"),
    )
