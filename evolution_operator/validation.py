"""Batched existence checks against the gateway's number lookup."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol, Sequence

from .client import ApiError
from .models import CandidateSet, DeliveryOutcome, ValidationOutcome, ValidationPartition

LOGGER = logging.getLogger(__name__)

NOT_REGISTERED = "not registered"
NOT_IN_RESPONSE = "not in validation response"


class ValidationError(RuntimeError):
    """Raised when the existence lookup fails or returns an unusable payload."""


class NumberLookup(Protocol):
    def check_whatsapp_numbers(self, instance_name: str, numbers: Sequence[str]) -> Any:  # pragma: no cover - protocol
        """Return one ``{number, exists, jid}`` item per checked number."""


def parse_lookup_response(response: Any) -> List[ValidationOutcome]:
    """Convert the raw lookup payload into :class:`ValidationOutcome` items."""

    if not isinstance(response, list):
        raise ValidationError(f"Unexpected response format: {type(response).__name__}")

    outcomes: List[ValidationOutcome] = []
    for item in response:
        if not isinstance(item, dict) or item.get("number") is None:
            LOGGER.debug("Ignoring malformed lookup item %r", item)
            continue
        jid = item.get("jid")
        outcomes.append(
            ValidationOutcome(
                identifier=str(item["number"]).strip(),
                exists=bool(item.get("exists")),
                resolved_handle=str(jid) if jid else None,
            )
        )
    return outcomes


class ExistenceValidator:
    """Partition a candidate set into deliverable and skipped identifiers."""

    def __init__(self, lookup: NumberLookup) -> None:
        self._lookup = lookup

    def validate(self, instance_name: str, candidates: CandidateSet) -> ValidationPartition:
        """Run one lookup covering every candidate and partition the result.

        Candidates that the response does not mention are skipped, so every
        candidate ends up either deliverable or with a skip reason.
        """

        try:
            response = self._lookup.check_whatsapp_numbers(instance_name, list(candidates))
        except ApiError as exc:
            raise ValidationError(exc.message) from exc
        except Exception as exc:
            raise ValidationError(str(exc) or type(exc).__name__) from exc

        by_identifier: Dict[str, ValidationOutcome] = {}
        for outcome in parse_lookup_response(response):
            if outcome.identifier not in candidates:
                LOGGER.debug("Lookup returned unexpected number %s", outcome.identifier)
                continue
            by_identifier.setdefault(outcome.identifier, outcome)

        partition = ValidationPartition()
        for identifier in candidates:
            outcome = by_identifier.get(identifier)
            if outcome is None:
                LOGGER.warning("No validation result for %s; skipping it", identifier)
                partition.skipped.append(DeliveryOutcome.skipped(identifier, NOT_IN_RESPONSE))
                continue
            partition.outcomes.append(outcome)
            if outcome.exists:
                partition.deliverable.append(identifier)
            else:
                partition.skipped.append(DeliveryOutcome.skipped(identifier, NOT_REGISTERED))
        return partition


__all__ = [
    "ExistenceValidator",
    "NOT_IN_RESPONSE",
    "NOT_REGISTERED",
    "NumberLookup",
    "ValidationError",
    "parse_lookup_response",
]
