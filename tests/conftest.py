from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from evolution_operator.client import ApiError


class FakeGateway:
    """In-memory stand-in for the gateway client used by the bulk pipeline."""

    def __init__(
        self,
        *,
        failures: Optional[Dict[str, str]] = None,
        lookup: Any = None,
        lookup_error: Optional[Exception] = None,
        on_send: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.failures = failures or {}
        self.lookup = lookup
        self.lookup_error = lookup_error
        self.on_send = on_send
        self.sent: List[tuple[str, str, str]] = []
        self.lookups: List[tuple[str, List[str]]] = []

    def send_text(self, instance_name: str, number: str, text: str) -> Any:
        self.sent.append((instance_name, number, text))
        if self.on_send is not None:
            self.on_send(number)
        if number in self.failures:
            raise ApiError(self.failures[number], status=400)
        return {"key": {"remoteJid": f"{number}@s.whatsapp.net"}}

    def check_whatsapp_numbers(self, instance_name: str, numbers: Sequence[str]) -> Any:
        self.lookups.append((instance_name, list(numbers)))
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.lookup

    @property
    def sent_numbers(self) -> List[str]:
        return [number for _, number, _ in self.sent]


class RecordingSleeper:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingReporter:
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def duplicates_removed(self, removed: int, unique: int) -> None:
        self.events.append(("duplicates", removed, unique))

    def validating(self, count: int) -> None:
        self.events.append(("validating", count))

    def sending(self, count: int) -> None:
        self.events.append(("sending", count))

    def item_sent(self, index: int, total: int, outcome) -> None:
        self.events.append(("item", index, total, outcome.identifier))

    def warning(self, message: str) -> None:
        self.events.append(("warning", message))

    def summary(self, report) -> None:
        self.events.append(("summary", report.total_count))

    def names(self) -> List[str]:
        return [event[0] for event in self.events if event[0] != "item"]


@pytest.fixture()
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture()
def make_gateway() -> Callable[..., FakeGateway]:
    return FakeGateway
