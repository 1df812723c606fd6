"""Contract endpoints - creation, schedule, receipts, balance and cancellation"""

import time
import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request
from sqlalchemy.orm import Session

from travel_payments.api.v1.schemas import (
    BalanceSummaryResponse,
    CancelRequest,
    CancelResponse,
    ContractCreateRequest,
    ContractResponse,
    CreditSchema,
    ReceiptCreateRequest,
    ReceiptResponse,
    ScheduleResponse,
)
from travel_payments.api.v1.errors import to_http_error
from travel_payments.api.v1.schedule import reporting_configuration_warnings
from travel_payments.api.dependencies import get_approval_provider, get_cash_book_client, get_request_id
from travel_payments.config import settings
from travel_payments.domain.credits import days_before_departure, issue_credit_on_cancellation
from travel_payments.domain.discounts import ApprovalStatusProvider
from travel_payments.domain.exceptions import ContractCancelled, ContractNotFound, DomainException
from travel_payments.domain.money import from_cents, to_cents
from travel_payments.domain.payment_plan import PaymentPlan, build_balance_summary, build_payment_plan
from travel_payments.infrastructure.clients.cash_book import CashBookClient
from travel_payments.infrastructure.database.models import TravelContract
from travel_payments.infrastructure.database.repositories import (
    ContractRepository,
    CreditRepository,
    InstallmentRepository,
    ReceiptRepository,
    contract_to_config,
)
from travel_payments.infrastructure.database.session import get_db
from travel_payments.infrastructure.observability.logging import log_contract_created, log_credit_event
from travel_payments.infrastructure.observability.metrics import (
    record_credit_issued,
    record_redemption,
    record_schedule,
)

router = APIRouter()


def _approval_threshold() -> Decimal:
    return Decimal(str(settings.custom_discount_approval_threshold_percent))


def load_contract(db: Session, contract_id: str) -> TravelContract:
    contract = ContractRepository(db).get_contract(contract_id)
    if contract is None:
        raise ContractNotFound(f"Contract {contract_id} not found")
    return contract


def stored_plan(contract: TravelContract) -> PaymentPlan:
    """
    Re-derive a stored contract's plan.

    The credit was redeemed and the discount priced at creation; later approval
    changes never move the persisted parcelas, so neither do balances.
    """
    return build_payment_plan(
        contract_to_config(contract),
        start_date=contract.contract_date,
        fixed_discount=from_cents(contract.discount_cents),
    )


@router.post("/contracts", response_model=ContractResponse, status_code=201)
def create_contract(
    body: ContractCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    cash_book: CashBookClient = Depends(get_cash_book_client),
    approval_provider: Optional[ApprovalStatusProvider] = Depends(get_approval_provider),
):
    """
    Finalize a contract and persist its installment schedule.

    Flow:
    1. Validate the payment configuration
    2. Persist the contract
    3. Price it, redeeming the prior-trip credit if the entrada uses one
    4. Persist the installments
    5. Notify the cash book (gift expense, credit redemption)

    Any failure rolls the whole transaction back, so a rejected credit never
    leaves a half-created contract and a failed contract never consumes a credit.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    contract_date = body.contract_date or date.today()

    try:
        config = body.payment.to_domain()
        contract_repo = ContractRepository(db)
        db_contract = contract_repo.create_contract(
            client_ref=body.client_ref,
            config=config,
            contract_date=contract_date,
            client_name=body.client_name,
            destination=body.destination,
            travel_date=body.travel_date,
        )

        with reporting_configuration_warnings(request_id):
            plan = build_payment_plan(
                config,
                credit_lookup=CreditRepository(db),
                approval_provider=approval_provider,
                approval_threshold_percent=_approval_threshold(),
                start_date=contract_date,
                redeem_credit=True,
                used_for_client_ref=body.client_ref,
                today=date.today(),
            )
        contract_repo.record_pricing(db_contract, plan)
        InstallmentRepository(db).create_installments(db_contract.id, plan.schedule)
        persisted = InstallmentRepository(db).list_for_contract(db_contract.id)

        db.commit()

    except DomainException as e:
        db.rollback()
        raise to_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    contract_id = str(db_contract.id)

    if plan.down_payment.excluded_from_owed and plan.down_payment.credit_ref:
        record_redemption("redeemed")
        log_credit_event(
            request_id,
            "redeemed",
            plan.down_payment.credit_ref,
            str(plan.down_payment.excluded_amount),
            contract_id=contract_id,
        )
        background_tasks.add_task(
            cash_book.send_event,
            {
                "event": "CREDIT_REDEEMED",
                "credit_id": plan.down_payment.credit_ref,
                "contract_id": contract_id,
                "client_ref": body.client_ref,
                "amount_cents": to_cents(plan.down_payment.excluded_amount),
            },
        )

    if plan.gross.gift_value > 0:
        # Gift trips are booked as an agency expense
        background_tasks.add_task(
            cash_book.send_event,
            {
                "event": "GIFT_EXPENSE",
                "contract_id": contract_id,
                "client_ref": body.client_ref,
                "destination": body.destination,
                "amount_cents": -to_cents(plan.gross.gift_value),
            },
        )

    record_schedule(plan.schedule[0].to_be_defined, plan.upfront)
    duration_ms = (time.time() - start_time) * 1000
    log_contract_created(
        request_id,
        contract_id,
        body.client_ref,
        str(sum(e.amount for e in plan.schedule)),
        len(plan.schedule),
        plan.down_payment.credit_ref,
        duration_ms,
    )

    return ContractResponse(
        contract_id=contract_id,
        client_ref=body.client_ref,
        schedule=ScheduleResponse.from_plan(plan, persisted),
    )


@router.get("/contracts/{contract_id}/schedule", response_model=ContractResponse)
def get_schedule(
    contract_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """Persisted installment schedule of a contract"""
    request_id = get_request_id(request)
    try:
        contract = load_contract(db, contract_id)
        plan = stored_plan(contract)
    except DomainException as e:
        raise to_http_error(e, request_id)

    persisted = InstallmentRepository(db).list_for_contract(contract.id)
    return ContractResponse(
        contract_id=str(contract.id),
        client_ref=contract.client_ref,
        is_cancelled=contract.is_cancelled,
        schedule=ScheduleResponse.from_plan(plan, persisted or None),
    )


@router.post("/contracts/{contract_id}/receipts", response_model=ReceiptResponse, status_code=201)
def create_receipt(
    contract_id: str,
    body: ReceiptCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a payment against a contract, optionally tied to a parcela.

    Receipts are never edited; installment status is derived from them on read.
    """
    request_id = get_request_id(request)
    try:
        contract = load_contract(db, contract_id)
        if contract.is_cancelled:
            raise ContractCancelled(f"Contract {contract_id} is cancelled")
    except DomainException as e:
        raise to_http_error(e, request_id)

    installment_id = None
    if body.parcela_id is not None:
        installment = InstallmentRepository(db).get_for_contract(contract.id, body.parcela_id)
        if installment is None:
            raise HTTPException(status_code=422, detail=f"Parcela {body.parcela_id} does not belong to this contract")
        installment_id = installment.id

    receipt = ReceiptRepository(db).create_receipt(
        contract_id=contract.id,
        amount_cents=to_cents(body.amount),
        payment_date=body.payment_date,
        installment_id=installment_id,
        payment_method=body.payment_method.value if body.payment_method else None,
        role=body.role.value if body.role else None,
        reference=body.reference,
    )
    db.commit()

    logging.info(
        "Receipt recorded",
        extra={
            "request_id": request_id,
            "contract_id": str(contract.id),
            "receipt_id": str(receipt.id),
            "amount_cents": receipt.amount_cents,
        },
    )

    return ReceiptResponse(
        receipt_id=str(receipt.id),
        contract_id=str(contract.id),
        amount=body.amount,
        payment_date=body.payment_date,
        parcela_id=str(installment_id) if installment_id else None,
        role=receipt.role,
    )


@router.get("/contracts/{contract_id}/balance", response_model=BalanceSummaryResponse)
def get_balance(
    contract_id: str,
    request: Request,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """
    Total owed, paid and outstanding, with per-parcela status.

    Reconciles persisted parcelas when they exist, the virtual schedule otherwise.
    """
    request_id = get_request_id(request)
    try:
        contract = load_contract(db, contract_id)
        plan = stored_plan(contract)
    except DomainException as e:
        raise to_http_error(e, request_id)

    summary = build_balance_summary(
        plan,
        ReceiptRepository(db).list_for_contract(contract.id, contract.client_ref),
        persisted_schedule=InstallmentRepository(db).list_for_contract(contract.id),
        today=as_of or date.today(),
    )
    return BalanceSummaryResponse.from_summary(summary)


@router.post("/contracts/{contract_id}/cancel", response_model=CancelResponse)
def cancel_contract(
    contract_id: str,
    body: CancelRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    cash_book: CashBookClient = Depends(get_cash_book_client),
):
    """
    Cancel a contract and convert what the client paid into a credit.

    The credit carries a penalty unless the cancellation comes far enough
    ahead of departure, and expires after the configured validity window.
    """
    request_id = get_request_id(request)
    cancelled_on = body.cancelled_on or date.today()

    try:
        contract = load_contract(db, contract_id)
        if contract.is_cancelled:
            raise ContractCancelled(f"Contract {contract_id} is already cancelled")

        summary = build_balance_summary(
            stored_plan(contract),
            ReceiptRepository(db).list_for_contract(contract.id, contract.client_ref),
            persisted_schedule=InstallmentRepository(db).list_for_contract(contract.id),
            today=cancelled_on,
        )

        credit = issue_credit_on_cancellation(
            summary.total_paid,
            days_before_departure(contract.travel_date, cancelled_on),
            source_client_ref=contract.client_ref,
            issued_at=cancelled_on,
            client_name=contract.client_name,
            destination=contract.destination,
            penalty_rate=Decimal(str(settings.cancellation_penalty_rate)),
            penalty_free_days=settings.penalty_free_days_before_departure,
            validity_days=settings.credit_validity_days,
        )
        CreditRepository(db).add(credit, source_contract_id=contract.id)
        ContractRepository(db).mark_cancelled(contract, cancelled_on, body.reason)
        db.commit()

    except DomainException as e:
        db.rollback()
        raise to_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_credit_issued(credit.penalty_rate > 0)
    log_credit_event(
        request_id,
        "issued",
        credit.credit_id,
        str(credit.amount),
        contract_id=str(contract.id),
        penalty_rate=str(credit.penalty_rate),
        expires_at=credit.expires_at.isoformat(),
    )
    background_tasks.add_task(
        cash_book.send_event,
        {
            "event": "CREDIT_ISSUED",
            "credit_id": credit.credit_id,
            "contract_id": str(contract.id),
            "client_ref": contract.client_ref,
            "amount_cents": to_cents(credit.amount),
            "expires_at": credit.expires_at.isoformat(),
        },
    )

    return CancelResponse(
        contract_id=str(contract.id),
        total_paid=summary.total_paid,
        credit=CreditSchema.from_credit(credit),
    )
