"""Domain models - pure Python dataclasses representing payment entities"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from travel_payments.domain.exceptions import ValidationError
from travel_payments.domain.money import Money, ZERO, non_negative, to_money


class DiscountKind(str, Enum):
    NONE = "none"
    TIER_3PCT = "tier_3pct"
    TIER_5PCT = "tier_5pct"
    CUSTOM = "custom"


class DiscountUnit(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ApprovalStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    """How a down payment or receipt was funded"""

    CASH = "cash"
    PIX = "pix"
    CARD_CREDIT = "card_credit"
    CARD_DEBIT = "card_debit"
    BANK_CREDIT = "bank_credit"
    BOLETO = "boleto"
    LINK = "link"
    PRIOR_TRIP_CREDIT = "prior_trip_credit"


class PaymentPlanType(str, Enum):
    """How the client settles the trip as a whole"""

    UPFRONT = "avista"
    PIX = "pix"
    AGENCY_INSTALLMENTS = "crediario_agencia"
    BANK_CREDIT = "credito_banco"
    BOLETO = "boleto"
    LINK = "link"
    GIFT = "brinde"


# Paid in full when the contract is signed; nothing left to schedule
UPFRONT_PLAN_TYPES = frozenset({PaymentPlanType.UPFRONT, PaymentPlanType.BANK_CREDIT})


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class ReceiptRole(str, Enum):
    DOWN_PAYMENT = "down_payment"
    INSTALLMENT = "installment"
    GENERAL = "general"


class CreditStatus(str, Enum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TravelPrice:
    """Base traveler price plus companions; base is waived for a gift booking"""

    base_price: Optional[Money] = None
    companions: Tuple[Money, ...] = ()
    is_gift: bool = False


@dataclass(frozen=True)
class GrossPrice:
    """Result of price composition"""

    billable: Money
    gift_value: Money = ZERO
    companions_total: Money = ZERO


@dataclass(frozen=True)
class DiscountSpec:
    kind: DiscountKind = DiscountKind.NONE
    custom_value: Optional[Money] = None
    custom_unit: DiscountUnit = DiscountUnit.PERCENTAGE
    approval: ApprovalStatus = ApprovalStatus.NONE
    approved_max_percent: Optional[Decimal] = None
    approval_request_ref: Optional[str] = None


@dataclass(frozen=True)
class DownPaymentSplit:
    method: PaymentMethod
    amount: Money


@dataclass(frozen=True)
class DownPayment:
    """Entrada requested by the contract"""

    amount: Money = ZERO
    method: Optional[PaymentMethod] = None
    credit_ref: Optional[str] = None
    splits: Tuple[DownPaymentSplit, ...] = ()


@dataclass(frozen=True)
class DownPaymentAllocation:
    """
    Allocated entrada.

    effective_amount always reduces what is left to schedule. The part funded
    by a prior-trip credit (excluded_amount) is not cash and never counts as paid.
    """

    effective_amount: Money = ZERO
    excluded_from_owed: bool = False
    excluded_amount: Money = ZERO
    method: Optional[PaymentMethod] = None
    credit_ref: Optional[str] = None

    @property
    def cash_amount(self) -> Money:
        return self.effective_amount - self.excluded_amount


NO_DOWN_PAYMENT = DownPaymentAllocation()


@dataclass(frozen=True)
class InstallmentScheduleEntry:
    """Single parcela in a payment schedule"""

    index: int
    amount: Money
    due_date: Optional[date] = None
    status: InstallmentStatus = InstallmentStatus.PENDING
    installment_id: Optional[str] = None
    to_be_defined: bool = False
    paid_date: Optional[date] = None


@dataclass(frozen=True)
class Receipt:
    """Captured payment; never mutated"""

    amount: Money
    payment_date: date
    installment_ref: Optional[str] = None
    client_ref: Optional[str] = None
    receipt_id: Optional[str] = None
    method: Optional[PaymentMethod] = None
    role: Optional[ReceiptRole] = None


@dataclass(frozen=True)
class Credit:
    """Non-cash balance issued when a trip is cancelled"""

    credit_id: str
    amount: Money
    source_client_ref: str
    issued_at: date
    expires_at: date
    status: CreditStatus = CreditStatus.ACTIVE
    total_paid: Money = ZERO
    penalty_rate: Decimal = Decimal("0")
    client_name: Optional[str] = None
    destination: Optional[str] = None
    used_for_client_ref: Optional[str] = None
    used_at: Optional[date] = None


@dataclass(frozen=True)
class Reconciliation:
    """Output of reconciling a schedule against receipts"""

    discounted_total: Money
    total_paid: Money
    outstanding_balance: Money
    entries: List[InstallmentScheduleEntry]
    down_payment_settled: bool = False


@dataclass(frozen=True)
class BalanceSummary:
    """Shape consumed by the contract PDF and the client screen"""

    total_travel_amount: Money
    total_paid: Money
    outstanding_balance: Money
    down_payment_amount: Money
    entrada_paid: bool
    remaining_installments: int
    installment_amount: Money
    parcelas: List[InstallmentScheduleEntry]


@dataclass(frozen=True)
class ClientPaymentConfig:
    """
    Everything the engine needs to price and schedule one client's trip.

    Validated once on construction: money fields are normalized to 2 decimals
    and negative values raise ValidationError.
    """

    travel_price: Optional[Money] = None
    companions: Tuple[Money, ...] = ()
    is_gift: bool = False
    discount_type: DiscountKind = DiscountKind.NONE
    discount_value: Optional[Money] = None
    discount_currency: DiscountUnit = DiscountUnit.PERCENTAGE
    discount_approval_status: ApprovalStatus = ApprovalStatus.NONE
    discount_approval_request_id: Optional[str] = None
    approved_max_percent: Optional[Decimal] = None
    down_payment_amount: Money = ZERO
    down_payment_method: Optional[PaymentMethod] = None
    down_payment_splits: Tuple[DownPaymentSplit, ...] = ()
    used_credit_id: Optional[str] = None
    installments_count: Optional[int] = None
    installment_due_date: Optional[str] = None
    first_installment_due_date: Optional[date] = None
    payment_method: Optional[PaymentPlanType] = None

    def __post_init__(self):
        # frozen dataclass: normalize through object.__setattr__
        if self.travel_price is not None:
            object.__setattr__(self, "travel_price", non_negative(self.travel_price, "travel_price"))
        object.__setattr__(
            self,
            "companions",
            tuple(non_negative(p, "companion price") for p in self.companions),
        )
        if self.discount_value is not None:
            object.__setattr__(self, "discount_value", non_negative(self.discount_value, "discount_value"))
        if self.approved_max_percent is not None:
            max_percent = Decimal(str(self.approved_max_percent))
            if max_percent < 0:
                raise ValidationError("approved_max_percent must not be negative")
            object.__setattr__(self, "approved_max_percent", max_percent)
        object.__setattr__(
            self,
            "down_payment_amount",
            non_negative(self.down_payment_amount, "down_payment_amount"),
        )
        splits = tuple(
            DownPaymentSplit(method=s.method, amount=non_negative(s.amount, "down payment split"))
            for s in self.down_payment_splits
        )
        if sum(1 for s in splits if s.method == PaymentMethod.PRIOR_TRIP_CREDIT) > 1:
            raise ValidationError("Only one down payment split may use a prior-trip credit")
        object.__setattr__(self, "down_payment_splits", splits)
        if self.down_payment_uses_credit and not self.used_credit_id:
            raise ValidationError("used_credit_id is required when the down payment uses a prior-trip credit")

    @property
    def down_payment_uses_credit(self) -> bool:
        if self.down_payment_splits:
            return any(s.method == PaymentMethod.PRIOR_TRIP_CREDIT for s in self.down_payment_splits)
        return self.down_payment_method == PaymentMethod.PRIOR_TRIP_CREDIT

    @property
    def is_gift_booking(self) -> bool:
        return self.is_gift or self.payment_method == PaymentPlanType.GIFT

    @property
    def is_upfront(self) -> bool:
        return self.payment_method in UPFRONT_PLAN_TYPES

    def travel(self) -> TravelPrice:
        return TravelPrice(
            base_price=self.travel_price,
            companions=self.companions,
            is_gift=self.is_gift_booking,
        )

    def discount(self) -> DiscountSpec:
        return DiscountSpec(
            kind=self.discount_type,
            custom_value=self.discount_value,
            custom_unit=self.discount_currency,
            approval=self.discount_approval_status,
            approved_max_percent=self.approved_max_percent,
            approval_request_ref=self.discount_approval_request_id,
        )

    def down_payment(self) -> DownPayment:
        if self.down_payment_splits:
            amount = sum((s.amount for s in self.down_payment_splits), ZERO)
        else:
            amount = self.down_payment_amount
        return DownPayment(
            amount=to_money(amount),
            method=self.down_payment_method,
            credit_ref=self.used_credit_id,
            splits=self.down_payment_splits,
        )
