from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

from ..app_logger import get_logger
from ..core.constants import DEFAULT_NOTIFY_TIMEOUT_SECONDS, DEFAULT_NOTIFY_WORKERS
from .model import DeliveryResult, Notification
from .notifier import Notifier

log = get_logger(__name__)


class NotificationDispatcher:
    """Runs deliveries off the request thread.

    ``send`` never blocks the caller and never raises; ``send_and_wait`` waits at most
    ``timeout`` seconds and turns a slow delivery into a failed result.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        max_workers: int = DEFAULT_NOTIFY_WORKERS,
        timeout: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
    ):
        self._notifier = notifier
        self._timeout = float(timeout)
        self._executor = ThreadPoolExecutor(max_workers=int(max_workers), thread_name_prefix="notify")

    def _deliver(self, recipient: str, notification: Notification) -> DeliveryResult:
        try:
            result = self._notifier.deliver(recipient, notification)
        except Exception as e:
            log.exception("notifier raised kind=%s to=%s", notification.kind, recipient)
            return DeliveryResult.failure(recipient, str(e) or e.__class__.__name__)
        if not result.ok:
            log.warning("notification not delivered kind=%s to=%s: %s", notification.kind, recipient, result.error)
        return result

    def send(self, recipient: str | None, notification: Notification) -> Future | None:
        if not recipient:
            log.warning("dropping %s notification: no recipient", notification.kind)
            return None
        try:
            return self._executor.submit(self._deliver, recipient, notification)
        except RuntimeError as e:
            log.error("notification executor unavailable kind=%s: %s", notification.kind, e)
            return None

    def send_and_wait(self, recipient: str | None, notification: Notification, *, timeout: float | None = None) -> DeliveryResult:
        future = self.send(recipient, notification)
        if future is None:
            return DeliveryResult.failure(recipient or "", "no recipient or executor unavailable")
        try:
            return future.result(timeout=self._timeout if timeout is None else timeout)
        except FutureTimeout:
            return DeliveryResult.failure(recipient or "", "delivery timed out")

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
