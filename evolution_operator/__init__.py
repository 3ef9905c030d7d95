"""Operator toolkit for an Evolution API WhatsApp gateway."""

from . import models  # noqa: F401
from .client import ApiError, EvolutionClient  # noqa: F401
from .config import ConfigurationError, GatewaySettings  # noqa: F401
from .dispatch import BulkSendCommand, SequentialDispatcher  # noqa: F401
from .models import (
    BulkSendRequest,
    CandidateSet,
    DeliveryOutcome,
    DeliveryStatus,
    DispatchReport,
    ValidationOutcome,
)
from .normalize import NoCandidatesError, parse_candidates  # noqa: F401
from .report import render_report  # noqa: F401

__all__ = [
    "ApiError",
    "BulkSendCommand",
    "BulkSendRequest",
    "CandidateSet",
    "ConfigurationError",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatchReport",
    "EvolutionClient",
    "GatewaySettings",
    "NoCandidatesError",
    "SequentialDispatcher",
    "ValidationOutcome",
    "parse_candidates",
    "render_report",
    "dispatch",
]
