"""Configuration helpers for the Evolution API operator toolkit."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

LOGGER = logging.getLogger(__name__)

BASE_URL_ENV = "EVOLUTION_API_URL"
API_KEY_ENV = "EVOLUTION_API_KEY"
DEFAULT_TIMEOUT = 30.0


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


@dataclass(frozen=True)
class GatewaySettings:
    """Connection details for the gateway REST API."""

    base_url: str
    api_key: str
    timeout: float = DEFAULT_TIMEOUT

    def masked_key(self) -> str:
        if not self.api_key:
            return ""
        return f"{self.api_key[:4]}..." if len(self.api_key) > 4 else "****"


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        import yaml

        data = yaml.safe_load(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping")
    return data


def resolve_settings(
    config: Optional[Mapping[str, Any]] = None,
    *,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GatewaySettings:
    """Merge CLI flags, environment variables and file values, in that order."""

    config = config or {}
    environ = os.environ if environ is None else environ

    resolved_url = base_url or environ.get(BASE_URL_ENV) or config.get("base_url") or ""
    resolved_key = api_key or environ.get(API_KEY_ENV) or config.get("api_key") or ""
    resolved_timeout = timeout if timeout is not None else config.get("timeout", DEFAULT_TIMEOUT)

    try:
        resolved_timeout = float(resolved_timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout value '{resolved_timeout}'") from exc

    LOGGER.debug("Resolved gateway base URL %s", resolved_url or "(unset)")
    return GatewaySettings(
        base_url=str(resolved_url).strip(),
        api_key=str(resolved_key).strip(),
        timeout=resolved_timeout,
    )


def validate_settings(settings: GatewaySettings) -> GatewaySettings:
    """Raise :class:`ConfigurationError` unless the settings are usable."""

    if not settings.base_url:
        raise ConfigurationError("Evolution API Base URL is not configured")
    if not settings.api_key:
        raise ConfigurationError("API Key is not configured")

    parsed = urlparse(settings.base_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(
            "Invalid Base URL format. Please provide a valid URL (e.g., http://localhost:8080)"
        )
    if settings.timeout <= 0:
        raise ConfigurationError("Timeout must be a positive number of seconds")
    return settings
