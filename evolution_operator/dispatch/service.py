"""Bulk send pipeline that delivers one message at a time to a list of numbers."""
from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional, Protocol, Sequence

from ..models import BulkSendRequest, DeliveryOutcome, DispatchReport
from ..normalize import require_candidates
from ..progress import LoggingProgressReporter, ProgressReporter
from ..rate_limit import DelayPolicy, Pacer, Sleeper
from ..report import build_report
from ..validation import ExistenceValidator, NumberLookup, ValidationError

LOGGER = logging.getLogger(__name__)


class MessageSender(Protocol):
    """Protocol for the single-message send call used by the dispatcher."""

    def send_text(self, instance_name: str, number: str, text: str) -> Any:  # pragma: no cover - runtime protocol
        """Deliver ``text`` to ``number`` or raise on failure."""


class BulkGateway(MessageSender, NumberLookup, Protocol):
    """Everything the bulk pipeline needs from the gateway client."""


class SequentialDispatcher:
    """Sends to each identifier in order, pausing between consecutive sends."""

    def __init__(
        self,
        sender: MessageSender,
        *,
        pacer: Optional[Pacer] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self._sender = sender
        self._pacer = pacer or Pacer()
        self._reporter = reporter or LoggingProgressReporter()

    def dispatch(self, instance_name: str, identifiers: Sequence[str], text: str) -> List[DeliveryOutcome]:
        """Return one outcome per identifier, in input order."""

        outcomes: List[DeliveryOutcome] = []
        total = len(identifiers)
        for index, identifier in enumerate(identifiers):
            outcome = self._deliver(instance_name, identifier, text)
            outcomes.append(outcome)
            _notify(self._reporter.item_sent, index + 1, total, outcome)
            self._pacer.pause_after(index, total)
        return outcomes

    def _deliver(self, instance_name: str, identifier: str, text: str) -> DeliveryOutcome:
        try:
            self._sender.send_text(instance_name, identifier, text)
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc) or "ERROR"
            LOGGER.debug("Send to %s failed", identifier, exc_info=True)
            return DeliveryOutcome.failed(identifier, str(message))
        return DeliveryOutcome.sent(identifier)


class BulkSendCommand:
    """Runs the whole bulk pipeline; one run at a time per command instance."""

    def __init__(
        self,
        gateway: BulkGateway,
        *,
        reporter: Optional[ProgressReporter] = None,
        sleeper: Optional[Sleeper] = None,
    ) -> None:
        self._gateway = gateway
        self._reporter = reporter or LoggingProgressReporter()
        self._sleeper = sleeper
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def run(self, request: BulkSendRequest) -> Optional[DispatchReport]:
        """Execute one dispatch run.

        Returns ``None`` without doing anything when a run is already in
        progress on this instance. Raises
        :class:`~evolution_operator.normalize.NoCandidatesError` when the input
        holds no numbers; no remote call is made in that case.
        """

        if not self._busy.acquire(blocking=False):
            LOGGER.debug("Already processing, ignoring duplicate submission")
            return None
        try:
            return self._run(request)
        finally:
            self._busy.release()

    def _run(self, request: BulkSendRequest) -> DispatchReport:
        candidates = require_candidates(request.numbers)
        if candidates.duplicates:
            _notify(self._reporter.duplicates_removed, candidates.duplicates, len(candidates))

        deliverable: List[str] = list(candidates)
        skipped: List[DeliveryOutcome] = []
        if request.validate:
            _notify(self._reporter.validating, len(candidates))
            try:
                partition = ExistenceValidator(self._gateway).validate(request.instance_name, candidates)
            except ValidationError as exc:
                _notify(self._reporter.warning, f"Validation failed ({exc}); proceeding without validation")
            else:
                deliverable = partition.deliverable
                skipped = partition.skipped

        outcomes: List[DeliveryOutcome] = list(skipped)
        if deliverable:
            _notify(self._reporter.sending, len(deliverable))
            pacer = Pacer(DelayPolicy.from_milliseconds(request.delay_ms), self._sleeper)
            dispatcher = SequentialDispatcher(self._gateway, pacer=pacer, reporter=self._reporter)
            outcomes.extend(dispatcher.dispatch(request.instance_name, deliverable, request.text))
        else:
            LOGGER.info("No deliverable numbers after validation")

        report = build_report(candidates, outcomes, validation_enabled=request.validate)
        _notify(self._reporter.summary, report)
        return report


def _notify(callback, *args) -> None:
    try:
        callback(*args)
    except Exception:  # pragma: no cover - reporters are advisory
        LOGGER.exception("Progress reporter %s raised", getattr(callback, "__name__", callback))
