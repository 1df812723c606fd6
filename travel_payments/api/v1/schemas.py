"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date
from decimal import Decimal
from typing import List, Optional

from travel_payments.domain.models import (
    ApprovalStatus,
    BalanceSummary,
    ClientPaymentConfig,
    Credit,
    DiscountKind,
    DiscountUnit,
    DownPaymentSplit,
    InstallmentScheduleEntry,
    PaymentMethod,
    PaymentPlanType,
    ReceiptRole,
)
from travel_payments.domain.payment_plan import PaymentPlan
from travel_payments.domain.installments import schedule_total


class DownPaymentSplitSchema(BaseModel):
    """One payment method's share of the entrada"""

    method: PaymentMethod
    amount: Decimal = Field(..., gt=0)


class ClientPaymentConfigSchema(BaseModel):
    """Payment configuration of a client's trip"""

    travel_price: Optional[Decimal] = Field(None, ge=0, description="Primary traveler price")
    companions: List[Decimal] = Field(default_factory=list, description="Companion prices")
    is_gift: bool = False
    discount_type: DiscountKind = DiscountKind.NONE
    discount_value: Optional[Decimal] = Field(None, ge=0)
    discount_currency: DiscountUnit = DiscountUnit.PERCENTAGE
    discount_approval_status: ApprovalStatus = ApprovalStatus.NONE
    discount_approval_request_id: Optional[str] = None
    approved_max_percent: Optional[Decimal] = Field(None, ge=0)
    down_payment_amount: Decimal = Field(Decimal("0"), ge=0)
    down_payment_method: Optional[PaymentMethod] = None
    down_payment_splits: List[DownPaymentSplitSchema] = Field(default_factory=list)
    used_credit_id: Optional[str] = None
    installments_count: Optional[int] = None
    installment_due_date: Optional[str] = Field(None, description='Day of month, e.g. "10" or "dia 10"')
    first_installment_due_date: Optional[date] = None
    payment_method: Optional[PaymentPlanType] = None

    def to_domain(self) -> ClientPaymentConfig:
        """Raises travel_payments ValidationError for inconsistent combinations"""
        return ClientPaymentConfig(
            travel_price=self.travel_price,
            companions=tuple(self.companions),
            is_gift=self.is_gift,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            discount_currency=self.discount_currency,
            discount_approval_status=self.discount_approval_status,
            discount_approval_request_id=self.discount_approval_request_id,
            approved_max_percent=self.approved_max_percent,
            down_payment_amount=self.down_payment_amount,
            down_payment_method=self.down_payment_method,
            down_payment_splits=tuple(
                DownPaymentSplit(method=s.method, amount=s.amount) for s in self.down_payment_splits
            ),
            used_credit_id=self.used_credit_id,
            installments_count=self.installments_count,
            installment_due_date=self.installment_due_date,
            first_installment_due_date=self.first_installment_due_date,
            payment_method=self.payment_method,
        )


class InstallmentSchema(BaseModel):
    """Single parcela in a schedule"""

    id: Optional[str] = None
    index: int
    amount: float
    due_date: Optional[date] = None
    status: str = "pending"
    to_be_defined: bool = False
    paid_date: Optional[date] = None

    @classmethod
    def from_entry(cls, entry: InstallmentScheduleEntry) -> "InstallmentSchema":
        return cls(
            id=entry.installment_id,
            index=entry.index,
            amount=entry.amount,
            due_date=entry.due_date,
            status=entry.status.value,
            to_be_defined=entry.to_be_defined,
            paid_date=entry.paid_date,
        )


class ScheduleResponse(BaseModel):
    """Priced payment plan"""

    gross: float
    gift_value: float
    discount: float
    discounted_total: float
    down_payment: float
    down_payment_excluded_from_owed: bool
    amount_to_schedule: float
    installments: List[InstallmentSchema]

    @classmethod
    def from_plan(cls, plan: PaymentPlan, schedule: Optional[List[InstallmentScheduleEntry]] = None) -> "ScheduleResponse":
        schedule = schedule if schedule is not None else plan.schedule
        return cls(
            gross=plan.gross.billable,
            gift_value=plan.gross.gift_value,
            discount=plan.discount,
            discounted_total=plan.discounted_total,
            down_payment=plan.down_payment.effective_amount,
            down_payment_excluded_from_owed=plan.down_payment.excluded_from_owed,
            amount_to_schedule=schedule_total(schedule),
            installments=[InstallmentSchema.from_entry(e) for e in schedule],
        )


class ContractCreateRequest(BaseModel):
    """Request body for POST /v1/contracts"""

    client_ref: str = Field(..., min_length=1, description="Client identifier")
    client_name: Optional[str] = None
    destination: Optional[str] = None
    travel_date: Optional[date] = None
    contract_date: Optional[date] = None
    payment: ClientPaymentConfigSchema


class ContractResponse(BaseModel):
    """Response for contract creation and schedule lookup"""

    contract_id: str
    client_ref: str
    is_cancelled: bool = False
    schedule: ScheduleResponse


class ReceiptCreateRequest(BaseModel):
    """Request body for POST /v1/contracts/{id}/receipts"""

    amount: Decimal = Field(..., gt=0)
    payment_date: date
    parcela_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    role: Optional[ReceiptRole] = None
    reference: Optional[str] = None


class ReceiptResponse(BaseModel):
    receipt_id: str
    contract_id: str
    amount: float
    payment_date: date
    parcela_id: Optional[str] = None
    role: Optional[str] = None


class BalanceSummaryResponse(BaseModel):
    """Balance shape expected by the client screen and contract PDF"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_travel_amount: float
    total_paid: float
    outstanding_balance: float
    down_payment_amount: float
    entrada_paid: bool
    remaining_installments: int
    installment_amount: float
    parcelas: List[InstallmentSchema]

    @classmethod
    def from_summary(cls, summary: BalanceSummary) -> "BalanceSummaryResponse":
        return cls(
            total_travel_amount=summary.total_travel_amount,
            total_paid=summary.total_paid,
            outstanding_balance=summary.outstanding_balance,
            down_payment_amount=summary.down_payment_amount,
            entrada_paid=summary.entrada_paid,
            remaining_installments=summary.remaining_installments,
            installment_amount=summary.installment_amount,
            parcelas=[InstallmentSchema.from_entry(e) for e in summary.parcelas],
        )


class CreditSchema(BaseModel):
    """Prior-trip credit as listed in the back office"""

    id: str
    amount: float
    client_ref: str
    client_name: Optional[str] = None
    destination: Optional[str] = None
    status: str
    issued_at: date
    expires_at: date
    total_paid: float
    penalty_rate: float
    used_for_client_ref: Optional[str] = None
    used_at: Optional[date] = None

    @classmethod
    def from_credit(cls, credit: Credit) -> "CreditSchema":
        return cls(
            id=credit.credit_id,
            amount=credit.amount,
            client_ref=credit.source_client_ref,
            client_name=credit.client_name,
            destination=credit.destination,
            status=credit.status.value,
            issued_at=credit.issued_at,
            expires_at=credit.expires_at,
            total_paid=credit.total_paid,
            penalty_rate=credit.penalty_rate,
            used_for_client_ref=credit.used_for_client_ref,
            used_at=credit.used_at,
        )


class CancelRequest(BaseModel):
    """Request body for POST /v1/contracts/{id}/cancel"""

    reason: str = Field(..., min_length=1)
    cancelled_on: Optional[date] = None


class CancelResponse(BaseModel):
    contract_id: str
    total_paid: float
    credit: CreditSchema


class RedeemRequest(BaseModel):
    """Request body for POST /v1/credits/{id}/redeem"""

    used_for_client_ref: str = Field(..., min_length=1)
