"""Status notifications emitted at the phase boundaries of a bulk send."""
from __future__ import annotations

import logging
import sys
from typing import Optional, Protocol, TextIO

from .models import DeliveryOutcome, DeliveryStatus, DispatchReport
from .report import summary_line

LOGGER = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Receives advisory checkpoints; implementations must not affect outcomes."""

    def duplicates_removed(self, removed: int, unique: int) -> None:  # pragma: no cover - protocol
        ...

    def validating(self, count: int) -> None:  # pragma: no cover - protocol
        ...

    def sending(self, count: int) -> None:  # pragma: no cover - protocol
        ...

    def item_sent(self, index: int, total: int, outcome: DeliveryOutcome) -> None:  # pragma: no cover - protocol
        ...

    def warning(self, message: str) -> None:  # pragma: no cover - protocol
        ...

    def summary(self, report: DispatchReport) -> None:  # pragma: no cover - protocol
        ...


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class LoggingProgressReporter:
    """Default reporter that writes every checkpoint to the module logger."""

    def duplicates_removed(self, removed: int, unique: int) -> None:
        LOGGER.info("Removed %s, processing %s unique numbers", _plural(removed, "duplicate"), unique)

    def validating(self, count: int) -> None:
        LOGGER.info("validating (%s candidates)", count)

    def sending(self, count: int) -> None:
        LOGGER.info("sending (%s candidates)", count)

    def item_sent(self, index: int, total: int, outcome: DeliveryOutcome) -> None:
        if outcome.status is DeliveryStatus.SENT:
            LOGGER.info("Message %s/%s sent to %s", index, total, outcome.identifier)
        else:
            LOGGER.info("Message %s/%s failed for %s: %s", index, total, outcome.identifier, outcome.detail)

    def warning(self, message: str) -> None:
        LOGGER.warning(message)

    def summary(self, report: DispatchReport) -> None:
        LOGGER.info(summary_line(report))


class StreamProgressReporter(LoggingProgressReporter):
    """Reporter for the terminal: phase notices go to a stream, item detail to the log."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def _emit(self, message: str) -> None:
        stream = self._stream or sys.stderr
        print(message, file=stream)
        stream.flush()

    def duplicates_removed(self, removed: int, unique: int) -> None:
        self._emit(f"Removed {_plural(removed, 'duplicate')}, processing {unique} unique numbers")

    def validating(self, count: int) -> None:
        self._emit(f"validating ({count} candidates)")

    def sending(self, count: int) -> None:
        self._emit(f"sending ({count} candidates)")

    def warning(self, message: str) -> None:
        self._emit(f"Warning: {message}")

    def summary(self, report: DispatchReport) -> None:
        self._emit(summary_line(report))


__all__ = ["LoggingProgressReporter", "ProgressReporter", "StreamProgressReporter"]
