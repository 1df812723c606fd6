"""Mapping of domain failures to HTTP responses"""

import logging
from fastapi import HTTPException

from travel_payments.domain.exceptions import (
    ContractCancelled,
    ContractNotFound,
    CreditAlreadyRedeemed,
    CreditError,
    CreditExpired,
    CreditInsufficient,
    CreditNotFound,
    DomainException,
    ValidationError,
)
from travel_payments.infrastructure.observability.metrics import record_redemption

REDEMPTION_OUTCOMES = {
    CreditNotFound: ("not_found", 404),
    CreditExpired: ("expired", 410),
    CreditAlreadyRedeemed: ("already_redeemed", 409),
    CreditInsufficient: ("insufficient", 422),
}


def to_http_error(error: DomainException, request_id: str) -> HTTPException:
    """Log a domain failure and build the HTTPException to raise"""
    if isinstance(error, CreditError):
        outcome, status_code = REDEMPTION_OUTCOMES.get(type(error), ("failed", 409))
        record_redemption(outcome)
        logging.warning(
            f"Credit rejected: {error}",
            extra={"request_id": request_id, "credit_id": error.credit_id, "outcome": outcome},
        )
        return HTTPException(status_code=status_code, detail=str(error))

    if isinstance(error, ValidationError):
        logging.warning(f"Invalid payment data: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, ContractNotFound):
        return HTTPException(status_code=404, detail=str(error))

    if isinstance(error, ContractCancelled):
        return HTTPException(status_code=409, detail=str(error))

    logging.error(f"Unhandled domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
