"""Cash book (caixa) webhook client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from travel_payments.config import settings
from travel_payments.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class CashBookClient:
    """Client for sending financial events to the agency cash book"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.cash_book_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based): backoff_base * 2^(attempt-1)"""
        return self.backoff_base * (2 ** (attempt - 1))

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Post one financial event (credit issued/redeemed, gift expense) to the cash book.

        Up to max_retries attempts; HTTP error statuses and network failures are
        retried after backoff_delay, doubling from backoff_base each time. Every
        failed attempt increments the webhook failure counter; the last one is
        re-raised.
        """
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                    return
                except (httpx.HTTPStatusError, httpx.RequestError):
                    webhook_failure_counter.inc()
                    if attempt == self.max_retries:
                        raise
                    await asyncio.sleep(self.backoff_delay(attempt))
