"""SQLAlchemy ORM models for contracts, parcelas, receipts and credits"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class TravelContract(Base):
    """A client's trip with its payment configuration"""

    __tablename__ = "travel_contract"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_ref = Column(Text, nullable=False, index=True)
    client_name = Column(Text, nullable=True)
    destination = Column(Text, nullable=True)
    travel_date = Column(Date, nullable=True)
    contract_date = Column(Date, nullable=False)

    # Pricing
    travel_price_cents = Column(BigInteger, nullable=True)
    companion_prices_cents = Column(JSON, nullable=False, default=list)
    is_gift = Column(Boolean, nullable=False, default=False)
    gift_value_cents = Column(BigInteger, nullable=False, default=0)

    # Discount; value is in hundredths (cents, or hundredths of a percent)
    discount_type = Column(String(16), nullable=False, default="none")
    discount_value_cents = Column(BigInteger, nullable=True)
    discount_currency = Column(String(16), nullable=False, default="percentage")
    discount_approval_status = Column(String(16), nullable=False, default="none")
    discount_approval_request_id = Column(Text, nullable=True)
    approved_max_percent = Column(Float, nullable=True)
    discount_cents = Column(BigInteger, nullable=False, default=0)

    # Entrada
    down_payment_cents = Column(BigInteger, nullable=False, default=0)
    down_payment_method = Column(String(32), nullable=True)
    down_payment_splits = Column(JSON, nullable=False, default=list)
    used_credit_id = Column(Text, nullable=True)

    # Schedule
    payment_method = Column(String(32), nullable=True)
    installments_count = Column(Integer, nullable=True)
    installment_due_date = Column(Text, nullable=True)
    first_installment_due_date = Column(Date, nullable=True)
    total_cents = Column(BigInteger, nullable=False)

    # Cancellation
    is_cancelled = Column(Boolean, nullable=False, default=False)
    cancelled_at = Column(Date, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "Installment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="Installment.installment_number",
    )
    receipts = relationship("Receipt", back_populates="contract", cascade="all, delete-orphan")


class Installment(Base):
    """Persisted parcela of a finalized contract"""

    __tablename__ = "installment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("travel_contract.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    to_be_defined = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("TravelContract", back_populates="installments")


class Receipt(Base):
    """Captured payment; rows are only ever inserted"""

    __tablename__ = "receipt"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("travel_contract.id", ondelete="CASCADE"), nullable=False)
    installment_id = Column(UUID(as_uuid=True), ForeignKey("installment.id"), nullable=True)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(32), nullable=True)
    role = Column(String(16), nullable=True)
    reference = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("TravelContract", back_populates="receipts")


class TravelCredit(Base):
    """Credit issued when a contract is cancelled"""

    __tablename__ = "travel_credit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_contract_id = Column(UUID(as_uuid=True), ForeignKey("travel_contract.id"), nullable=True)
    client_ref = Column(Text, nullable=False, index=True)
    client_name = Column(Text, nullable=True)
    destination = Column(Text, nullable=True)
    total_paid_cents = Column(BigInteger, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    penalty_rate = Column(Float, nullable=False, default=0.0)
    issued_at = Column(Date, nullable=False)
    expires_at = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default="active")
    used_for_client_ref = Column(Text, nullable=True)
    used_at = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
