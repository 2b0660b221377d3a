import os
import stat

import pytest

from okta_broker.config import AppConfig, ConfigError, Host, normalize_app_url
from okta_broker.okta.client import SsoProvider

SSO_APP = "https://corp.okta.com/home/amazon_aws_sso/0oa1a2b3c4d5e6f7/1234"


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "okta-broker")


def test_normalize_app_url():
    assert normalize_app_url(SSO_APP + "/?fromHome=true") == SSO_APP


def test_normalize_rejects_relative_url():
    with pytest.raises(ConfigError):
        normalize_app_url("corp.okta.com/home")


def test_defaults_without_file(config_path):
    settings = AppConfig(config_path)

    assert settings.provider() == SsoProvider.OKTA_AWS
    assert settings.keyring_enabled() is True
    assert settings.region() is None
    assert settings.find_host(SsoProvider.OKTA_AWS) is None


def test_env_var_selects_file(config_path, monkeypatch):
    monkeypatch.setenv("OKTA_BROKER_CONFIG", config_path)

    assert AppConfig().path == config_path


def test_add_and_read_back(config_path):
    settings = AppConfig(config_path)
    settings.add_host(Host(SsoProvider.OKTA_AWS_SSO, SSO_APP + "/", "jane", region="eu-central-1", mfa="totp", mfa_provider="google"))
    settings.write()

    reread = AppConfig(config_path)
    host = reread.find_host(SsoProvider.OKTA_AWS_SSO, SSO_APP + "?x=1")

    assert host.username == "jane"
    assert host.region == "eu-central-1"
    assert host.mfa == "totp"
    assert host.mfa_provider == "google"
    assert reread.find_host(SsoProvider.OKTA_AWS) is None
    assert stat.S_IMODE(os.stat(config_path).st_mode) == 0o600


def test_update_clears_options(config_path):
    settings = AppConfig(config_path)
    settings.add_host(Host(SsoProvider.OKTA_AWS, SSO_APP, "jane", mfa="push"))
    settings.add_host(Host(SsoProvider.OKTA_AWS, SSO_APP, "john"))

    host = settings.find_host(SsoProvider.OKTA_AWS)
    assert host.username == "john"
    assert host.mfa is None


def test_defaults_section(config_path):
    with open(config_path, "w") as fh:
        fh.write("[defaults]\nprovider = okta-aws-sso\nkeyring = false\nregion = eu-west-1\n")

    settings = AppConfig(config_path)

    assert settings.provider() == SsoProvider.OKTA_AWS_SSO
    assert settings.keyring_enabled() is False
    assert settings.region() == "eu-west-1"


def test_unknown_provider(config_path):
    with open(config_path, "w") as fh:
        fh.write("[defaults]\nprovider = github\n")

    with pytest.raises(ConfigError):
        AppConfig(config_path).provider()


def test_malformed_file(config_path):
    with open(config_path, "w") as fh:
        fh.write("[defaults]\nkeyring = true\n[defaults]\n")

    with pytest.raises(ConfigError, match="cannot parse"):
        AppConfig(config_path)
