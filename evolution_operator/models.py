"""Data models shared by the bulk dispatch pipeline, the CLI, and the exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


# --- Input Models ---

@dataclass(frozen=True, slots=True)
class CandidateSet:
    """Ordered, deduplicated recipient identifiers for one dispatch run."""

    identifiers: Tuple[str, ...] = ()
    duplicates: int = 0

    def __len__(self) -> int:
        return len(self.identifiers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.identifiers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.identifiers


@dataclass(frozen=True, slots=True)
class BulkSendRequest:
    """Form values collected for a single bulk send."""

    instance_name: str
    numbers: str
    text: str
    delay_ms: int = 0
    validate: bool = False


# --- Validation Models ---

@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Existence lookup result for one candidate."""

    identifier: str
    exists: bool
    resolved_handle: Optional[str] = None


@dataclass(slots=True)
class ValidationPartition:
    """Candidates split into those cleared for delivery and those skipped."""

    deliverable: List[str] = field(default_factory=list)
    skipped: List["DeliveryOutcome"] = field(default_factory=list)
    outcomes: List[ValidationOutcome] = field(default_factory=list)

    @property
    def valid(self) -> List[ValidationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.exists]

    @property
    def invalid(self) -> List[ValidationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.exists]


# --- Delivery Models ---

class DeliveryStatus(str, Enum):
    SENT = "OK"
    FAILED = "ERROR"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of delivering (or not delivering) to one candidate."""

    identifier: str
    status: DeliveryStatus
    detail: Optional[str] = None

    @classmethod
    def sent(cls, identifier: str) -> "DeliveryOutcome":
        return cls(identifier=identifier, status=DeliveryStatus.SENT)

    @classmethod
    def failed(cls, identifier: str, detail: str) -> "DeliveryOutcome":
        return cls(identifier=identifier, status=DeliveryStatus.FAILED, detail=detail)

    @classmethod
    def skipped(cls, identifier: str, detail: str) -> "DeliveryOutcome":
        return cls(identifier=identifier, status=DeliveryStatus.SKIPPED, detail=detail)

    def as_row(self) -> Dict[str, Any]:
        """Return a serialisable representation of the outcome."""
        return {
            "number": self.identifier,
            "status": self.status.value,
            "message": self.detail or "",
        }


@dataclass(frozen=True, slots=True)
class DispatchReport:
    """Aggregate outcome of a dispatch run."""

    sent_count: int
    failed_count: int
    skipped_count: int
    total_count: int
    outcomes: Tuple[DeliveryOutcome, ...] = ()
    validation_enabled: bool = False

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0


__all__ = [
    "BulkSendRequest",
    "CandidateSet",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatchReport",
    "ValidationOutcome",
    "ValidationPartition",
]
