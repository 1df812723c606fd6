"""POST /v1/schedule/preview - Price and schedule a configuration without saving it"""

import logging
import warnings
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterator, Optional
from fastapi import APIRouter, Depends, Request

from travel_payments.api.v1.schemas import ClientPaymentConfigSchema, ScheduleResponse
from travel_payments.api.v1.errors import to_http_error
from travel_payments.api.dependencies import get_approval_provider, get_request_id
from travel_payments.config import settings
from travel_payments.domain.discounts import ApprovalStatusProvider
from travel_payments.domain.exceptions import ConfigurationWarning, ValidationError
from travel_payments.domain.payment_plan import build_payment_plan
from travel_payments.infrastructure.observability.metrics import discount_warning_counter, record_schedule

router = APIRouter()


@contextmanager
def reporting_configuration_warnings(request_id: str) -> Iterator[None]:
    """Route ConfigurationWarning from pricing into the JSON log and metrics instead of stderr"""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConfigurationWarning)
        yield

    for warning in caught:
        if issubclass(warning.category, ConfigurationWarning):
            discount_warning_counter.inc()
            logging.warning(str(warning.message), extra={"request_id": request_id})
        else:
            warnings.warn_explicit(warning.message, warning.category, warning.filename, warning.lineno)


@router.post("/schedule/preview", response_model=ScheduleResponse)
def preview_schedule(
    body: ClientPaymentConfigSchema,
    request: Request,
    start_date: Optional[date] = None,
    approval_provider: Optional[ApprovalStatusProvider] = Depends(get_approval_provider),
):
    """
    Compute the virtual schedule for a payment configuration.

    Nothing is persisted and no credit is redeemed; a credit-funded entrada is
    priced as if the redemption succeeds. Used while a contract is still being
    edited, so a missing installment count yields an "amount to be defined" entry.
    """
    request_id = get_request_id(request)

    try:
        config = body.to_domain()
        with reporting_configuration_warnings(request_id):
            plan = build_payment_plan(
                config,
                approval_provider=approval_provider,
                approval_threshold_percent=Decimal(str(settings.custom_discount_approval_threshold_percent)),
                start_date=start_date or date.today(),
            )
    except ValidationError as e:
        raise to_http_error(e, request_id)

    record_schedule(plan.schedule[0].to_be_defined, plan.upfront)
    return ScheduleResponse.from_plan(plan)
