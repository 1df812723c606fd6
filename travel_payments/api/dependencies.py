"""Dependency injection for FastAPI endpoints"""

from typing import Optional
from fastapi import Request
from travel_payments.domain.discounts import ApprovalStatusProvider
from travel_payments.infrastructure.clients.cash_book import CashBookClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_cash_book_client() -> CashBookClient:
    """Provide cash book webhook client instance"""
    return CashBookClient()


def get_approval_provider() -> Optional[ApprovalStatusProvider]:
    """
    Live discount approval feed.

    None until a feed is wired in; the approval status stored with the
    payment configuration is used instead.
    """
    return None
