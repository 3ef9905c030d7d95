import pytest

from evolution_operator.client import ApiError
from evolution_operator.models import DeliveryStatus
from evolution_operator.normalize import parse_candidates
from evolution_operator.validation import (
    NOT_IN_RESPONSE,
    NOT_REGISTERED,
    ExistenceValidator,
    ValidationError,
    parse_lookup_response,
)


def test_validate_partitions_existing_and_missing_numbers(make_gateway) -> None:
    gateway = make_gateway(
        lookup=[
            {"number": "A", "exists": True, "jid": "A@s.whatsapp.net"},
            {"number": "B", "exists": False},
        ]
    )

    partition = ExistenceValidator(gateway).validate("inst", parse_candidates("A,B"))

    assert gateway.lookups == [("inst", ["A", "B"])]
    assert partition.deliverable == ["A"]
    assert [(o.identifier, o.status, o.detail) for o in partition.skipped] == [
        ("B", DeliveryStatus.SKIPPED, NOT_REGISTERED)
    ]
    assert partition.valid[0].resolved_handle == "A@s.whatsapp.net"
    assert [o.identifier for o in partition.invalid] == ["B"]


def test_validate_issues_a_single_lookup_for_all_candidates(make_gateway) -> None:
    numbers = [str(n) for n in range(250)]
    gateway = make_gateway(lookup=[{"number": n, "exists": True} for n in numbers])

    partition = ExistenceValidator(gateway).validate("inst", parse_candidates(",".join(numbers)))

    assert len(gateway.lookups) == 1
    assert partition.deliverable == numbers


def test_candidates_missing_from_response_are_skipped(make_gateway) -> None:
    gateway = make_gateway(lookup=[{"number": "A", "exists": True}, {"number": "Z", "exists": True}])

    partition = ExistenceValidator(gateway).validate("inst", parse_candidates("A\nB"))

    assert partition.deliverable == ["A"]
    assert [(o.identifier, o.detail) for o in partition.skipped] == [("B", NOT_IN_RESPONSE)]


def test_transport_error_becomes_validation_error(make_gateway) -> None:
    gateway = make_gateway(lookup_error=ApiError("HTTP 502", status=502))

    with pytest.raises(ValidationError, match="HTTP 502"):
        ExistenceValidator(gateway).validate("inst", parse_candidates("A"))


def test_unexpected_payload_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Unexpected response format"):
        parse_lookup_response({"status": "ok"})


def test_parse_lookup_response_ignores_malformed_items() -> None:
    outcomes = parse_lookup_response([{"exists": True}, "junk", {"number": 5511, "exists": 1}])

    assert [(o.identifier, o.exists, o.resolved_handle) for o in outcomes] == [("5511", True, None)]
