"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from idxclient.core.config import ENV_PREFIX, IDXConfig, get_default_config_yaml, load_config
from idxclient.core.errors import ConfigError

CONFIG_YAML = """\
okta:
  idx:
    issuer: "https://dev-123.okta.com/oauth2/default"
    clientId: "file-client"
    clientSecret: "file-secret"
    redirectUri: "http://localhost:8080/login/callback"
    scopes:
      - openid
      - email
    timeout: 15
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove IDX settings inherited from the environment."""
    for name in ("ISSUER", "CLIENTID", "CLIENTSECRET", "REDIRECTURI", "SCOPES", "TIMEOUT"):
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "okta.yaml"
    path.write_text(CONFIG_YAML)
    return path


def test_load_from_file(config_file: Path) -> None:
    """Settings are read from the okta.idx section."""
    config = load_config(config_file)

    assert config.issuer == "https://dev-123.okta.com/oauth2/default"
    assert config.client_id == "file-client"
    assert config.client_secret == "file-secret"
    assert config.redirect_uri == "http://localhost:8080/login/callback"
    assert config.scopes == ["openid", "email"]
    assert config.timeout == 15.0
    assert config.config_path == config_file
    config.validate()


def test_environment_overrides_file(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables take precedence over the file."""
    monkeypatch.setenv("OKTA_IDX_CLIENTID", "env-client")
    monkeypatch.setenv("OKTA_IDX_SCOPES", "openid, profile offline_access")
    monkeypatch.setenv("OKTA_IDX_TIMEOUT", "5")

    config = load_config(config_file)

    assert config.client_id == "env-client"
    assert config.client_secret == "file-secret"
    assert config.scopes == ["openid", "profile", "offline_access"]
    assert config.timeout == 5.0


def test_environment_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing file leaves defaults for the environment to fill."""
    monkeypatch.setenv("OKTA_IDX_ISSUER", "https://dev-123.okta.com/oauth2/default")

    config = load_config(tmp_path / "missing.yaml")

    assert config.issuer == "https://dev-123.okta.com/oauth2/default"
    assert config.scopes == ["openid", "profile"]
    assert config.config_path is None


def test_invalid_timeout_env(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OKTA_IDX_TIMEOUT", "soon")

    with pytest.raises(ConfigError, match="TIMEOUT"):
        load_config(config_file)


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "okta.yaml"
    path.write_text("okta: [unclosed\n")

    with pytest.raises(ConfigError, match="failed to read"):
        load_config(path)


def test_endpoints() -> None:
    config = IDXConfig(issuer="https://dev-123.okta.com/oauth2/default/")

    assert config.interact_endpoint == "https://dev-123.okta.com/oauth2/default/v1/interact"
    assert config.introspect_endpoint == "https://dev-123.okta.com/idp/idx/introspect"


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"issuer": ""}, "issuer is required"),
        ({"issuer": "http://dev-123.okta.com/oauth2/default"}, "https"),
        ({"issuer": "https://{yourOktaDomain}/oauth2/default"}, "placeholder"),
        ({"client_id": ""}, "client id"),
        ({"client_secret": ""}, "client secret"),
        ({"redirect_uri": ""}, "redirect URI"),
        ({"scopes": []}, "scope"),
        ({"timeout": 0}, "timeout"),
    ],
)
def test_validate_rejects(changes: dict, message: str) -> None:
    """Each missing or malformed setting is reported."""
    settings = {
        "issuer": "https://dev-123.okta.com/oauth2/default",
        "client_id": "client",
        "client_secret": "secret",
        "redirect_uri": "http://localhost:8080/login/callback",
    }
    settings.update(changes)

    with pytest.raises(ConfigError, match=message):
        IDXConfig(**settings).validate()


def test_secret_hidden_from_repr() -> None:
    assert "top-secret" not in repr(IDXConfig(client_secret="top-secret"))


def test_default_template_round_trips() -> None:
    """The template parses into a config with placeholders."""
    data = yaml.safe_load(get_default_config_yaml())
    config = IDXConfig.from_dict(data["okta"]["idx"])

    assert config.client_id == "{clientId}"
    assert config.scopes == ["openid", "profile"]
    with pytest.raises(ConfigError, match="placeholder"):
        config.validate()


def test_to_dict_matches_file_layout(config_file: Path) -> None:
    config = load_config(config_file)
    assert IDXConfig.from_dict(config.to_dict()["okta"]["idx"]).client_secret == "file-secret"
