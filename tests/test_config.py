import json

import pytest

from evolution_operator.config import (
    ConfigurationError,
    GatewaySettings,
    load_configuration,
    resolve_settings,
    validate_settings,
)


def test_load_configuration_reads_json_and_yaml(tmp_path) -> None:
    json_path = tmp_path / "gateway.json"
    json_path.write_text(json.dumps({"base_url": "http://a:8080", "api_key": "k"}), encoding="utf-8")
    yaml_path = tmp_path / "gateway.yaml"
    yaml_path.write_text("base_url: http://b:8080\ntimeout: 12\n", encoding="utf-8")

    assert load_configuration(json_path)["base_url"] == "http://a:8080"
    assert load_configuration(yaml_path) == {"base_url": "http://b:8080", "timeout": 12}


def test_load_configuration_errors(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="was not found"):
        load_configuration(tmp_path / "missing.json")

    ini = tmp_path / "gateway.ini"
    ini.write_text("[x]", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Unsupported configuration format"):
        load_configuration(ini)

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="must contain a mapping"):
        load_configuration(listing)


def test_resolve_settings_precedence() -> None:
    config = {"base_url": "http://file:1", "api_key": "file-key", "timeout": "7"}
    environ = {"EVOLUTION_API_URL": "http://env:2", "EVOLUTION_API_KEY": "env-key"}

    from_file = resolve_settings(config, environ={})
    from_env = resolve_settings(config, environ=environ)
    from_flags = resolve_settings(config, base_url="http://flag:3", api_key="flag-key", timeout=3, environ=environ)

    assert from_file == GatewaySettings("http://file:1", "file-key", 7.0)
    assert from_env == GatewaySettings("http://env:2", "env-key", 7.0)
    assert from_flags == GatewaySettings("http://flag:3", "flag-key", 3.0)


def test_resolve_settings_rejects_bad_timeout() -> None:
    with pytest.raises(ConfigurationError, match="Invalid timeout"):
        resolve_settings({"timeout": "soon"}, environ={})


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (GatewaySettings("", "k"), "Base URL is not configured"),
        (GatewaySettings("http://localhost:8080", ""), "API Key is not configured"),
        (GatewaySettings("localhost:8080", "k"), "Invalid Base URL format"),
        (GatewaySettings("ftp://host", "k"), "Invalid Base URL format"),
        (GatewaySettings("http://localhost", "k", timeout=0), "Timeout"),
    ],
)
def test_validate_settings_messages(settings, message) -> None:
    with pytest.raises(ConfigurationError, match=message):
        validate_settings(settings)


def test_validate_settings_accepts_good_values() -> None:
    settings = GatewaySettings("https://api.example.com", "secret-key")

    assert validate_settings(settings) is settings
    assert settings.masked_key() == "secr..."
