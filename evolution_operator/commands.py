"""One-shot gateway commands and the input parsing they need."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .client import EvolutionClient
from .models import CandidateSet, ValidationOutcome
from .normalize import NoCandidatesError, require_candidates, split_numbers
from .validation import parse_lookup_response


class CommandInputError(ValueError):
    """Raised when operator input cannot be turned into a request payload."""


def split_lines(text: Optional[str]) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def parse_poll_options(text: Optional[str]) -> List[str]:
    options = split_lines(text)
    if not options:
        raise CommandInputError("A poll needs at least one option, one per line")
    return options


def parse_sections(text: str) -> List[Dict[str, Any]]:
    """Parse and sanity-check the JSON sections of an interactive list."""

    try:
        sections = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CommandInputError(f"Sections must be valid JSON: {exc.msg}") from exc

    if not isinstance(sections, list) or not sections:
        raise CommandInputError("Sections must be a non-empty JSON array")
    for section in sections:
        if not isinstance(section, dict) or not isinstance(section.get("rows"), list):
            raise CommandInputError("Each section needs a title and a list of rows")
    return sections


def parse_int(value: Any, field: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise CommandInputError(f"{field} must be an integer") from exc


# ----------------------------------------------------------------------
# Number checks
# ----------------------------------------------------------------------

@dataclass
class NumberValidationResult:
    """Valid/invalid split of a number list, with the duplicates that were dropped."""

    candidates: CandidateSet
    valid: List[ValidationOutcome]
    invalid: List[ValidationOutcome]

    @property
    def checked(self) -> int:
        return len(self.valid) + len(self.invalid)

    def valid_numbers(self) -> str:
        return "\n".join(item.identifier for item in self.valid)

    def invalid_numbers(self) -> str:
        return "\n".join(item.identifier for item in self.invalid)

    def render(self) -> str:
        lines = ["=== VALID NUMBERS ==="]
        for item in self.valid:
            suffix = f" ({item.resolved_handle})" if item.resolved_handle else ""
            lines.append(f"{item.identifier}{suffix}")
        lines += ["", "=== INVALID NUMBERS ==="]
        lines += [item.identifier for item in self.invalid]
        lines += ["", f"Summary: {len(self.valid)} valid, {len(self.invalid)} invalid"]
        return "\n".join(lines)


def validate_numbers(client: EvolutionClient, instance_name: str, numbers: str) -> NumberValidationResult:
    """Check deduplicated numbers and split them into registered and unregistered."""

    candidates = require_candidates(numbers)
    outcomes = parse_lookup_response(client.check_whatsapp_numbers(instance_name, list(candidates)))
    valid = [outcome for outcome in outcomes if outcome.exists]
    invalid = [outcome for outcome in outcomes if not outcome.exists]
    return NumberValidationResult(candidates=candidates, valid=valid, invalid=invalid)


def check_numbers(client: EvolutionClient, instance_name: str, numbers: str) -> Any:
    """Return the raw lookup response without deduplication."""

    tokens = split_numbers(numbers)
    if not tokens:
        raise NoCandidatesError()
    return client.check_whatsapp_numbers(instance_name, tokens)


# ----------------------------------------------------------------------
# Instances
# ----------------------------------------------------------------------

def pairing_code(response: Any) -> Optional[str]:
    """Pull the QR code (base64) or pairing code out of a connect response."""

    if not isinstance(response, Mapping):
        return None
    return response.get("base64") or response.get("code") or None


def describe_instance(instance: Mapping[str, Any]) -> str:
    """Render an instance record as a short multi-line summary."""

    lines = [
        f"Instance: {instance.get('name', '')}",
        f"  ID: {instance.get('id', '')}",
        f"  Connection: {instance.get('connectionStatus') or 'Unknown'}",
    ]
    for label, key in (("Owner", "ownerJid"), ("Profile", "profileName"), ("Number", "number")):
        if instance.get(key):
            lines.append(f"  {label}: {instance[key]}")
    if instance.get("integration"):
        lines.append(f"  Integration: {instance['integration']}")
    token = instance.get("token")
    if token:
        lines.append(f"  Token: {str(token)[:8]}...")
    return "\n".join(lines)


__all__ = [
    "CommandInputError",
    "NumberValidationResult",
    "check_numbers",
    "describe_instance",
    "pairing_code",
    "parse_int",
    "parse_poll_options",
    "parse_sections",
    "split_lines",
    "validate_numbers",
]
