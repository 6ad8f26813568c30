# storefront/services/notification_service.py
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List

from storefront.domain.errors import StorefrontError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str  # "success" | "info" | "error"
    message: str
    kind: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationService:
    """
    User-visible notifications (the toasts of the UI).
    Errors are recovered at the operation that triggered them and end up here.
    """

    def __init__(self, max_pending: int = 50):
        self._pending: Deque[Notification] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    def _push(self, notification: Notification) -> Notification:
        with self._lock:
            self._pending.append(notification)
        logger.info(f"[NOTIFICATION] {notification.level}: {notification.message}")
        return notification

    def success(self, message: str) -> Notification:
        return self._push(Notification(level="success", message=message))

    def info(self, message: str) -> Notification:
        return self._push(Notification(level="info", message=message))

    def error(self, message: str, kind: str | None = None) -> Notification:
        return self._push(Notification(level="error", message=message, kind=kind))

    def from_exception(self, exc: StorefrontError) -> Notification:
        return self.error(exc.user_message, kind=type(exc).__name__)

    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> List[Notification]:
        with self._lock:
            items = list(self._pending)
            self._pending.clear()
        return items
