"""Data access layer for contracts, installments, receipts and credits"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from travel_payments.domain.models import (
    ApprovalStatus,
    ClientPaymentConfig,
    Credit,
    CreditStatus,
    DiscountKind,
    DiscountUnit,
    DownPaymentSplit,
    InstallmentScheduleEntry,
    InstallmentStatus,
    PaymentMethod,
    PaymentPlanType,
    Receipt as ReceiptEntry,
    ReceiptRole,
)
from travel_payments.domain.money import from_cents, to_cents
from travel_payments.domain.payment_plan import PaymentPlan
from travel_payments.infrastructure.database.models import Installment, Receipt, TravelContract, TravelCredit


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def contract_to_config(contract: TravelContract) -> ClientPaymentConfig:
    """Rebuild the validated payment configuration stored on a contract"""
    return ClientPaymentConfig(
        travel_price=from_cents(contract.travel_price_cents) if contract.travel_price_cents is not None else None,
        companions=tuple(from_cents(c) for c in contract.companion_prices_cents or []),
        is_gift=contract.is_gift,
        discount_type=DiscountKind(contract.discount_type),
        discount_value=(
            from_cents(contract.discount_value_cents) if contract.discount_value_cents is not None else None
        ),
        discount_currency=DiscountUnit(contract.discount_currency),
        discount_approval_status=ApprovalStatus(contract.discount_approval_status),
        discount_approval_request_id=contract.discount_approval_request_id,
        approved_max_percent=(
            Decimal(str(contract.approved_max_percent)) if contract.approved_max_percent is not None else None
        ),
        down_payment_amount=from_cents(contract.down_payment_cents),
        down_payment_method=PaymentMethod(contract.down_payment_method) if contract.down_payment_method else None,
        down_payment_splits=tuple(
            DownPaymentSplit(method=PaymentMethod(s["method"]), amount=from_cents(s["amount_cents"]))
            for s in contract.down_payment_splits or []
        ),
        used_credit_id=contract.used_credit_id,
        installments_count=contract.installments_count,
        installment_due_date=contract.installment_due_date,
        first_installment_due_date=contract.first_installment_due_date,
        payment_method=PaymentPlanType(contract.payment_method) if contract.payment_method else None,
    )


def installment_to_entry(installment: Installment) -> InstallmentScheduleEntry:
    return InstallmentScheduleEntry(
        index=installment.installment_number,
        amount=from_cents(installment.amount_cents),
        due_date=installment.due_date,
        status=InstallmentStatus(installment.status),
        installment_id=str(installment.id),
        to_be_defined=installment.to_be_defined,
        paid_date=installment.paid_date,
    )


def receipt_to_entry(receipt: Receipt, client_ref: Optional[str] = None) -> ReceiptEntry:
    return ReceiptEntry(
        amount=from_cents(receipt.amount_cents),
        payment_date=receipt.payment_date,
        installment_ref=str(receipt.installment_id) if receipt.installment_id else None,
        client_ref=client_ref,
        receipt_id=str(receipt.id),
        method=PaymentMethod(receipt.payment_method) if receipt.payment_method else None,
        role=ReceiptRole(receipt.role) if receipt.role else None,
    )


def credit_to_entry(credit: TravelCredit) -> Credit:
    return Credit(
        credit_id=str(credit.id),
        amount=from_cents(credit.amount_cents),
        source_client_ref=credit.client_ref,
        issued_at=credit.issued_at,
        expires_at=credit.expires_at,
        status=CreditStatus(credit.status),
        total_paid=from_cents(credit.total_paid_cents),
        penalty_rate=Decimal(str(credit.penalty_rate)),
        client_name=credit.client_name,
        destination=credit.destination,
        used_for_client_ref=credit.used_for_client_ref,
        used_at=credit.used_at,
    )


class ContractRepository:
    """Repository for travel contracts"""

    def __init__(self, db: Session):
        self.db = db

    def create_contract(
        self,
        client_ref: str,
        config: ClientPaymentConfig,
        contract_date: date,
        client_name: Optional[str] = None,
        destination: Optional[str] = None,
        travel_date: Optional[date] = None,
    ) -> TravelContract:
        """Persist the contract before pricing so credit redemption can reference it"""
        db_contract = TravelContract(
            client_ref=client_ref,
            client_name=client_name,
            destination=destination,
            travel_date=travel_date,
            contract_date=contract_date,
            travel_price_cents=to_cents(config.travel_price) if config.travel_price is not None else None,
            companion_prices_cents=[to_cents(c) for c in config.companions],
            is_gift=config.is_gift,
            discount_type=config.discount_type.value,
            discount_value_cents=to_cents(config.discount_value) if config.discount_value is not None else None,
            discount_currency=config.discount_currency.value,
            discount_approval_status=config.discount_approval_status.value,
            discount_approval_request_id=config.discount_approval_request_id,
            approved_max_percent=float(config.approved_max_percent) if config.approved_max_percent is not None else None,
            down_payment_cents=to_cents(config.down_payment_amount),
            down_payment_method=config.down_payment_method.value if config.down_payment_method else None,
            down_payment_splits=[
                {"method": s.method.value, "amount_cents": to_cents(s.amount)} for s in config.down_payment_splits
            ],
            used_credit_id=config.used_credit_id,
            payment_method=config.payment_method.value if config.payment_method else None,
            installments_count=config.installments_count,
            installment_due_date=config.installment_due_date,
            first_installment_due_date=config.first_installment_due_date,
            total_cents=0,
        )
        self.db.add(db_contract)
        self.db.flush()  # Get ID without committing
        return db_contract

    def record_pricing(self, contract: TravelContract, plan: PaymentPlan) -> None:
        contract.gift_value_cents = to_cents(plan.gross.gift_value)
        contract.discount_cents = to_cents(plan.discount)
        contract.total_cents = to_cents(plan.discounted_total)

    def get_contract(self, contract_id: str) -> Optional[TravelContract]:
        contract_uuid = parse_uuid(contract_id)
        if contract_uuid is None:
            return None
        return (
            self.db.query(TravelContract)
            .filter(TravelContract.id == contract_uuid)
            .first()
        )

    def mark_cancelled(self, contract: TravelContract, cancelled_at: date, reason: str) -> None:
        contract.is_cancelled = True
        contract.cancelled_at = cancelled_at
        contract.cancellation_reason = reason


class InstallmentRepository:
    """Repository for persisted parcelas"""

    def __init__(self, db: Session):
        self.db = db

    def create_installments(
        self, contract_id: uuid.UUID, schedule: List[InstallmentScheduleEntry]
    ) -> List[Installment]:
        rows = []
        for entry in schedule:
            db_installment = Installment(
                contract_id=contract_id,
                installment_number=entry.index,
                amount_cents=to_cents(entry.amount),
                due_date=entry.due_date,
                status=entry.status.value,
                to_be_defined=entry.to_be_defined,
                paid_date=entry.paid_date,
            )
            self.db.add(db_installment)
            rows.append(db_installment)
        self.db.flush()
        return rows

    def list_for_contract(self, contract_id: uuid.UUID) -> List[InstallmentScheduleEntry]:
        rows = (
            self.db.query(Installment)
            .filter(Installment.contract_id == contract_id)
            .order_by(Installment.installment_number)
            .all()
        )
        return [installment_to_entry(row) for row in rows]

    def get_for_contract(self, contract_id: uuid.UUID, installment_id: str) -> Optional[Installment]:
        installment_uuid = parse_uuid(installment_id)
        if installment_uuid is None:
            return None
        return (
            self.db.query(Installment)
            .filter(Installment.contract_id == contract_id, Installment.id == installment_uuid)
            .first()
        )


class ReceiptRepository:
    """Repository for receipts; insert-only"""

    def __init__(self, db: Session):
        self.db = db

    def create_receipt(
        self,
        contract_id: uuid.UUID,
        amount_cents: int,
        payment_date: date,
        installment_id: Optional[uuid.UUID] = None,
        payment_method: Optional[str] = None,
        role: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Receipt:
        db_receipt = Receipt(
            contract_id=contract_id,
            installment_id=installment_id,
            amount_cents=amount_cents,
            payment_date=payment_date,
            payment_method=payment_method,
            role=role,
            reference=reference,
        )
        self.db.add(db_receipt)
        self.db.flush()
        return db_receipt

    def list_for_contract(self, contract_id: uuid.UUID, client_ref: Optional[str] = None) -> List[ReceiptEntry]:
        rows = (
            self.db.query(Receipt)
            .filter(Receipt.contract_id == contract_id)
            .order_by(Receipt.payment_date, Receipt.created_at)
            .all()
        )
        return [receipt_to_entry(row, client_ref) for row in rows]


class CreditRepository:
    """Credit ledger backed by the travel_credit table"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, credit: Credit, source_contract_id: Optional[uuid.UUID] = None) -> Credit:
        db_credit = TravelCredit(
            id=uuid.UUID(credit.credit_id),
            source_contract_id=source_contract_id,
            client_ref=credit.source_client_ref,
            client_name=credit.client_name,
            destination=credit.destination,
            total_paid_cents=to_cents(credit.total_paid),
            amount_cents=to_cents(credit.amount),
            penalty_rate=float(credit.penalty_rate),
            issued_at=credit.issued_at,
            expires_at=credit.expires_at,
            status=credit.status.value,
        )
        self.db.add(db_credit)
        self.db.flush()
        return credit

    def get(self, credit_id: str) -> Optional[Credit]:
        credit_uuid = parse_uuid(credit_id)
        if credit_uuid is None:
            return None
        row = self.db.query(TravelCredit).filter(TravelCredit.id == credit_uuid).first()
        return credit_to_entry(row) if row else None

    def mark_redeemed(self, credit_id: str, today: date, used_for_client_ref: Optional[str] = None) -> bool:
        """
        Compare-and-set: only an active, unexpired row flips to redeemed.

        Two bookings racing for the same credit both see it active, but only
        one UPDATE matches the WHERE clause.
        """
        credit_uuid = parse_uuid(credit_id)
        if credit_uuid is None:
            return False
        result = self.db.execute(
            update(TravelCredit)
            .where(
                TravelCredit.id == credit_uuid,
                TravelCredit.status == CreditStatus.ACTIVE.value,
                TravelCredit.expires_at >= today,
            )
            .values(
                status=CreditStatus.REDEEMED.value,
                used_for_client_ref=used_for_client_ref,
                used_at=today,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def list_all(self) -> List[Credit]:
        rows = self.db.query(TravelCredit).order_by(TravelCredit.issued_at.desc()).all()
        return [credit_to_entry(row) for row in rows]

    def list_active(self, today: date) -> List[Credit]:
        rows = (
            self.db.query(TravelCredit)
            .filter(TravelCredit.status == CreditStatus.ACTIVE.value, TravelCredit.expires_at >= today)
            .order_by(TravelCredit.expires_at)
            .all()
        )
        return [credit_to_entry(row) for row in rows]
