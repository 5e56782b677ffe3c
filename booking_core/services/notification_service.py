"""Guest notifications for confirmed and cancelled reservations.

Dispatchers raise `NotificationError` when delivery fails. Allocation and
cancellation never call a dispatcher directly: they hand messages to
`BackgroundNotifier`, which delivers on worker threads and only logs failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from threading import Lock
from typing import Any, Optional

import requests

from booking_core.domain.errors import NotificationError
from booking_core.utils.config import Settings, get_settings
from booking_core.utils.logger import get_logger


logger = get_logger(__name__)


class NotificationKind(str, Enum):
    CONFIRMATION = "Confirmation"
    CANCELLATION = "Cancellation"


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"


def build_subject(kind: NotificationKind, payload: dict[str, Any]) -> str:
    if kind == NotificationKind.CONFIRMATION:
        return f"Booking Confirmed: Room #{payload.get('room_number')}"
    return f"Booking Cancelled: #{payload.get('reference')}"


class NotificationDispatcher(ABC):
    """Port: how guests are told about reservation changes."""

    @abstractmethod
    def notify(self, kind: NotificationKind, payload: dict[str, Any]) -> None:
        """Deliver one message or raise NotificationError."""
        ...


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Adapter: writes messages to the log. Default for local runs."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sent: list[tuple[NotificationKind, dict[str, Any]]] = []

    @property
    def sent(self) -> list[tuple[NotificationKind, dict[str, Any]]]:
        with self._lock:
            return list(self._sent)

    def notify(self, kind: NotificationKind, payload: dict[str, Any]) -> None:
        with self._lock:
            self._sent.append((kind, dict(payload)))
        logger.info(
            "Notification | subject=%s | guest_id=%s | reservation_id=%s",
            build_subject(kind, payload),
            payload.get("guest_id"),
            payload.get("reservation_id"),
        )


class WebhookNotificationDispatcher(NotificationDispatcher):
    """Adapter: POSTs each message as JSON to a mail relay endpoint."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def notify(self, kind: NotificationKind, payload: dict[str, Any]) -> None:
        body = {
            "kind": kind.value,
            "subject": build_subject(kind, payload),
            "payload": payload,
        }
        try:
            response = self._session.post(
                self._url,
                json=body,
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(
                f"{kind.value} notification to {self._url} failed: {exc}"
            ) from exc


def create_notification_dispatcher(settings: Optional[Settings] = None) -> NotificationDispatcher:
    """Pick the dispatcher adapter named by `notification_channel`."""
    resolved = settings or get_settings()
    channel = resolved.notification_channel

    if channel == "webhook":
        if not resolved.notification_webhook_url:
            raise ValueError(
                "BOOKING_NOTIFICATION_WEBHOOK_URL is required for the webhook channel"
            )
        return WebhookNotificationDispatcher(
            url=resolved.notification_webhook_url,
            timeout_seconds=resolved.notification_timeout_seconds,
        )

    if channel == "log":
        return LoggingNotificationDispatcher()

    raise ValueError(f"Unknown notification channel: {channel!r}")


class BackgroundNotifier:
    """Fire-and-forget delivery on a small worker pool."""

    def __init__(
        self,
        dispatcher: Optional[NotificationDispatcher] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._dispatcher = dispatcher or create_notification_dispatcher(self._settings)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self._settings.notification_workers),
            thread_name_prefix="notify",
        )
        self._pending: set[Future] = set()
        self._lock = Lock()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    def _deliver(self, kind: NotificationKind, payload: dict[str, Any]) -> DeliveryOutcome:
        try:
            self._dispatcher.notify(kind, payload)
        except Exception:
            logger.exception(
                "Notification delivery failed | kind=%s | reservation_id=%s",
                kind.value,
                payload.get("reservation_id"),
            )
            return DeliveryOutcome.FAILED
        return DeliveryOutcome.DELIVERED

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def submit(self, kind: NotificationKind, payload: dict[str, Any]) -> Optional[Future]:
        """Queue a message; never raises into the caller."""
        try:
            future = self._executor.submit(self._deliver, kind, dict(payload))
        except RuntimeError:
            logger.warning(
                "Notifier is shut down; dropping notification | kind=%s | reservation_id=%s",
                kind.value,
                payload.get("reservation_id"),
            )
            return None
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until queued messages finish. Used at shutdown and in tests."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
