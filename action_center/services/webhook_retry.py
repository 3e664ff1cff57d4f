"""Webhook redelivery side effect used by the webhook ``retry`` action.

A redeliverer either returns normally (delivery accepted) or raises
ExternalActionFailure. The dispatcher bounds every call with a timeout and
never mutates the item when redelivery fails.
"""

import asyncio
import random
from typing import Protocol

import httpx
import structlog

from action_center.core.config import Settings
from action_center.core.exceptions import ExternalActionFailure
from action_center.schemas.action_items import ActionItem

logger = structlog.get_logger(__name__)


class WebhookRedeliverer(Protocol):
    async def redeliver(self, item: ActionItem) -> str:
        """Redeliver the webhook behind ``item``. Returns a success message."""
        ...


class SimulatedWebhookRedeliverer:
    """Stand-in for the delivery system with a fixed expected failure rate.

    ``rng`` is injectable so tests can force either outcome.
    """

    def __init__(self, failure_rate: float = 0.10, rng: random.Random | None = None, latency: float = 0.0):
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()
        self.latency = latency

    async def redeliver(self, item: ActionItem) -> str:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.rng.random() < self.failure_rate:
            raise ExternalActionFailure("Webhook retry failed: endpoint returned 503")
        return "Webhook delivered successfully"


class HttpWebhookRedeliverer:
    """Asks the webhook delivery service to resend an event over HTTP."""

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def redeliver(self, item: ActionItem) -> str:
        payload = {"webhook_id": item.ref_id, "action_item_id": item.id}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ExternalActionFailure(f"Webhook retry timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise ExternalActionFailure(
                f"Webhook retry failed: endpoint returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalActionFailure(f"Webhook retry failed: {type(exc).__name__}") from exc

        return "Webhook delivered successfully"


def build_redeliverer(settings: Settings) -> WebhookRedeliverer:
    """Pick the redeliverer configured by ``webhook_retry_mode``."""
    if settings.webhook_retry_mode == "http":
        if not settings.webhook_redelivery_url:
            raise RuntimeError("webhook_retry_mode=http requires WEBHOOK_REDELIVERY_URL")
        return HttpWebhookRedeliverer(
            settings.webhook_redelivery_url,
            timeout=settings.webhook_retry_timeout_seconds,
        )
    return SimulatedWebhookRedeliverer(failure_rate=settings.webhook_retry_failure_rate)
