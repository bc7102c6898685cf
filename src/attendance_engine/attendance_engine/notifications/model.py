from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import DeliveryStatus


@dataclass(frozen=True)
class Notification:
    """Payload handed to a notifier. Rendering into HTML templates happens elsewhere."""

    kind: str
    subject: str
    body: str
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DeliveryResult:
    recipient: str
    status: DeliveryStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.OK

    @classmethod
    def success(cls, recipient: str) -> "DeliveryResult":
        return cls(recipient=recipient, status=DeliveryStatus.OK)

    @classmethod
    def failure(cls, recipient: str, error: str) -> "DeliveryResult":
        return cls(recipient=recipient, status=DeliveryStatus.FAILED, error=error)
