# WORKFLOW: Delivery of the end-of-run import notifications.
# Used by: Import pipeline orchestrator (exactly once per run)
# Classes:
# 1. Notifier - Protocol: emit(batch identity, notifications)
# 2. LoggingNotifier - Writes the notifications to the application log
# 3. WebhookNotifier - POSTs the notifications as JSON with httpx
# 4. create_notifier() - Pick the notifier from settings
#
# Notification flow: Import report -> Deduplicated messages -> Notifier -> Log / webhook
# Delivery is fire-and-forget: failures are logged, never raised into the pipeline.

import logging
from typing import Optional, Protocol, Sequence

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def emit(self, batch_identity: str, notifications: Sequence[str]) -> None:
        ...


class LoggingNotifier:
    """Report import notifications through the application log."""

    def emit(self, batch_identity: str, notifications: Sequence[str]) -> None:
        if not notifications:
            logger.info(f"Import {batch_identity} finished without notifications")
            return
        logger.info(f"Import {batch_identity} finished with {len(notifications)} notifications")
        for message in notifications:
            logger.info(f"[{batch_identity}] {message}")


class WebhookNotifier:
    """POST import notifications to an HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.client = client or httpx.Client(timeout=timeout)

    def emit(self, batch_identity: str, notifications: Sequence[str]) -> None:
        payload = {"batch_id": batch_identity, "notifications": list(notifications)}
        try:
            response = self.client.post(self.url, json=payload)
            response.raise_for_status()
            logger.info(f"Delivered {len(notifications)} notifications for import {batch_identity}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to deliver notifications for import {batch_identity}: {e}")


def create_notifier(source: Settings) -> Notifier:
    if source.notification_webhook_url:
        return WebhookNotifier(source.notification_webhook_url, timeout=source.notification_timeout_seconds)
    return LoggingNotifier()
