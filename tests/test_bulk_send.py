import json
import threading

import httpx
import pytest

from evolution_operator.client import ApiError, EvolutionClient
from evolution_operator.config import GatewaySettings
from evolution_operator.dispatch import BulkSendCommand
from evolution_operator.models import BulkSendRequest, DeliveryStatus
from evolution_operator.normalize import NoCandidatesError
from evolution_operator.report import render_report


def _request(numbers: str, **kwargs) -> BulkSendRequest:
    return BulkSendRequest(instance_name="inst", numbers=numbers, text="hello", **kwargs)


def test_run_without_validation_sends_to_every_unique_number(make_gateway, reporter, sleeper) -> None:
    gateway = make_gateway(failures={"B": "HTTP 500"})
    command = BulkSendCommand(gateway, reporter=reporter, sleeper=sleeper)

    report = command.run(_request("A, B\nA,C"))

    assert gateway.sent_numbers == ["A", "B", "C"]
    assert gateway.lookups == []
    assert (report.sent_count, report.failed_count, report.skipped_count, report.total_count) == (2, 1, 0, 3)
    assert all(o.status in {DeliveryStatus.SENT, DeliveryStatus.FAILED} for o in report.outcomes)
    assert reporter.names() == ["duplicates", "sending", "summary"]
    assert render_report(report) == "\n".join(
        [
            "number,status,message",
            "A,OK",
            "B,ERROR,HTTP 500",
            "C,OK",
            "",
            "Sent: 2, Failed: 1, Total: 3",
        ]
    )


def test_run_with_validation_only_sends_to_registered_numbers(make_gateway, reporter) -> None:
    gateway = make_gateway(lookup=[{"number": "A", "exists": True}, {"number": "B", "exists": False}])
    command = BulkSendCommand(gateway, reporter=reporter)

    report = command.run(_request("A,B", validate=True))

    assert gateway.lookups == [("inst", ["A", "B"])]
    assert gateway.sent_numbers == ["A"]
    assert render_report(report).splitlines()[1:3] == ["A,OK", "B,SKIPPED,not registered"]
    assert report.sent_count + report.failed_count + report.skipped_count == report.total_count == 2
    assert reporter.names() == ["validating", "sending", "summary"]
    assert ("validating", 2) in reporter.events
    assert ("sending", 1) in reporter.events


def test_skipped_entries_keep_candidate_order(make_gateway) -> None:
    gateway = make_gateway(
        lookup=[
            {"number": "A", "exists": False},
            {"number": "B", "exists": True},
            {"number": "C", "exists": False},
        ]
    )

    report = BulkSendCommand(gateway).run(_request("A,B,C", validate=True))

    assert [o.identifier for o in report.outcomes] == ["A", "B", "C"]
    assert render_report(report).endswith("Sent: 1, Failed: 0, Skipped: 2, Total: 3")


def test_run_stops_when_nothing_is_deliverable(make_gateway, reporter) -> None:
    gateway = make_gateway(lookup=[{"number": "A", "exists": False}, {"number": "B", "exists": False}])

    report = BulkSendCommand(gateway, reporter=reporter).run(_request("A,B", validate=True))

    assert gateway.sent == []
    assert (report.sent_count, report.failed_count, report.skipped_count) == (0, 0, 2)
    assert "sending" not in reporter.names()


def test_validator_failure_falls_back_to_unvalidated_delivery(make_gateway, reporter) -> None:
    gateway = make_gateway(lookup_error=ApiError("connection refused"))

    report = BulkSendCommand(gateway, reporter=reporter).run(_request("A,B", validate=True))

    assert gateway.sent_numbers == ["A", "B"]
    assert report.skipped_count == 0
    assert report.sent_count == 2
    assert reporter.names() == ["validating", "warning", "sending", "summary"]
    assert render_report(report).endswith("Sent: 2, Failed: 0, Skipped: 0, Total: 2")


def test_lookup_error_of_any_kind_falls_back(make_gateway, reporter) -> None:
    gateway = make_gateway(lookup_error=RuntimeError("boom"))

    report = BulkSendCommand(gateway, reporter=reporter).run(_request("A", validate=True))

    assert gateway.sent_numbers == ["A"]
    assert report.sent_count == 1
    assert ("warning", "Validation failed (boom); proceeding without validation") in reporter.events


def test_undecodable_lookup_body_falls_back_to_unvalidated_delivery() -> None:
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/chat/whatsappNumbers/"):
            return httpx.Response(200, content=b"<html>oops", headers={"content-type": "application/json"})
        sent.append(json.loads(request.content)["number"])
        return httpx.Response(201, json={"status": "PENDING"})

    settings = GatewaySettings(base_url="http://gateway.local:8080", api_key="secret")
    with EvolutionClient(settings, transport=httpx.MockTransport(handler)) as client:
        report = BulkSendCommand(client).run(_request("A,B", validate=True))

    assert sent == ["A", "B"]
    assert (report.sent_count, report.skipped_count) == (2, 0)


def test_unexpected_lookup_payload_also_falls_back(make_gateway) -> None:
    gateway = make_gateway(lookup={"error": "boom"})

    report = BulkSendCommand(gateway).run(_request("A", validate=True))

    assert gateway.sent_numbers == ["A"]
    assert report.sent_count == 1


def test_empty_input_makes_no_remote_calls(make_gateway) -> None:
    gateway = make_gateway(lookup=[])
    command = BulkSendCommand(gateway)

    with pytest.raises(NoCandidatesError):
        command.run(_request(" , \n", validate=True))

    assert gateway.sent == []
    assert gateway.lookups == []
    assert not command.busy


def test_delay_is_applied_between_consecutive_sends_only(make_gateway, sleeper) -> None:
    command = BulkSendCommand(make_gateway(), sleeper=sleeper)

    command.run(_request("A,B,C", delay_ms=500))

    assert sleeper.calls == [0.5, 0.5]


def test_reentrant_run_is_a_silent_no_op(make_gateway) -> None:
    nested_results = []
    command = None

    def resubmit(number: str) -> None:
        nested_results.append(command.run(_request("X,Y")))

    gateway = make_gateway(on_send=resubmit)
    command = BulkSendCommand(gateway)

    report = command.run(_request("A,B"))

    assert nested_results == [None, None]
    assert gateway.sent_numbers == ["A", "B"]
    assert report.total_count == 2
    assert not command.busy


def test_concurrent_submission_from_another_thread_is_ignored(make_gateway) -> None:
    started = threading.Event()
    release = threading.Event()

    def block(number: str) -> None:
        started.set()
        release.wait(timeout=5)

    gateway = make_gateway(on_send=block)
    command = BulkSendCommand(gateway)
    results = {}

    worker = threading.Thread(target=lambda: results.setdefault("first", command.run(_request("A"))))
    worker.start()
    assert started.wait(timeout=5)

    results["second"] = command.run(_request("B"))
    release.set()
    worker.join(timeout=5)

    assert results["second"] is None
    assert results["first"].total_count == 1
    assert gateway.sent_numbers == ["A"]


def test_command_can_run_again_after_completion(make_gateway) -> None:
    gateway = make_gateway()
    command = BulkSendCommand(gateway)

    command.run(_request("A"))
    command.run(_request("B"))

    assert gateway.sent_numbers == ["A", "B"]
