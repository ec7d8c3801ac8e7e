from enum import Enum
from dataclasses import dataclass, field
from typing import Any, List, Optional


class NotificationOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class OperationResult:
    """
    Outcome of an administrative operation that already succeeded.

    Side effects that are allowed to fail without undoing the operation
    (notification delivery, evidence file cleanup) are reported through
    ``warnings`` instead of exceptions.
    """
    action: str
    registration_id: int
    registration: Any = None
    notification: Optional[NotificationOutcome] = None
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str):
        self.warnings.append(message)

    def to_dict(self) -> dict:
        result = {
            "ok": True,
            "action": self.action,
            "id": self.registration_id,
        }
        if self.registration is not None:
            result["registration"] = self.registration.to_dict()
        if self.notification is not None:
            result["email"] = self.notification.value
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


@dataclass
class DeleteResult(OperationResult):
    removed_files: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)

    @property
    def cleanup_complete(self) -> bool:
        return not self.failed_files

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["cleanup_complete"] = self.cleanup_complete
        return result
