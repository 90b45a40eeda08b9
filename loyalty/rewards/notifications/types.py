from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NotificationState(str, Enum):
    NOT_NOTIFIED = "not_notified"
    ALMOST_UNLOCKED_SENT = "almost_unlocked_sent"
    UNLOCKED_SENT = "unlocked_sent"


@dataclass(frozen=True, slots=True)
class NotificationPayload:
    recipient: int
    template: str
    data: dict[str, object] = field(default_factory=dict)

    def as_dict(self) -> dict[str, object]:
        return {"recipient": self.recipient, "template": self.template, "data": dict(self.data)}
