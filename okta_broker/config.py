"""INI configuration of Okta hosts and defaults.

Example ``~/.okta-broker``::

    [defaults]
    provider = okta-aws-sso
    keyring = true
    region = us-east-1

    [aws https://corp.okta.com/home/amazon_aws/0oa1crzseqkrZUctZ357/272]
    username = jane.doe
    mfa = webauthn

    [aws-sso https://corp.okta.com/home/amazon_aws_sso/0oa1a2b3c4d5e6f7/1234]
    username = jane.doe
    region = eu-central-1
    mfa = totp
    mfa_provider = google
"""

import configparser
import os
from urllib.parse import urlparse, urlunparse

from okta_broker.errors import OktaBrokerError
from okta_broker.okta.client import SsoProvider

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.okta-broker")
CONFIG_ENV = "OKTA_BROKER_CONFIG"
DEFAULTS_SECTION = "defaults"

SECTION_PREFIX = {
    SsoProvider.OKTA_AWS: "aws ",
    SsoProvider.OKTA_AWS_SSO: "aws-sso ",
}


class ConfigError(OktaBrokerError):
    pass


def normalize_app_url(app_url):
    """Drop the query string and any trailing slash from *app_url*."""
    parsed = urlparse(app_url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(f"not an absolute URL: {app_url!r}")
    return urlunparse(parsed._replace(path=parsed.path.rstrip("/"), query="", fragment=""))


class Host:
    """One configured Okta app."""

    def __init__(self, provider, app_url, username, region=None, mfa=None, mfa_provider=None):
        self.provider = provider
        self.app_url = normalize_app_url(app_url)
        self.username = username
        self.region = region
        self.mfa = mfa
        self.mfa_provider = mfa_provider

    @property
    def section(self):
        return SECTION_PREFIX[self.provider] + self.app_url


class AppConfig:
    def __init__(self, path=None):
        self.path = path or os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG_PATH
        self.parser = configparser.ConfigParser(interpolation=None)
        if os.path.exists(self.path):
            try:
                self.parser.read(self.path)
            except configparser.Error as exc:
                raise ConfigError(f"cannot parse {self.path}: {exc}") from exc

    # -- defaults ------------------------------------------------------------

    def _default(self, key, fallback=None):
        return self.parser.get(DEFAULTS_SECTION, key, fallback=fallback)

    def provider(self):
        value = self._default("provider", SsoProvider.OKTA_AWS.value)
        try:
            return SsoProvider(value)
        except ValueError:
            raise ConfigError(f"unknown provider {value!r} in {self.path}") from None

    def keyring_enabled(self):
        try:
            return self.parser.getboolean(DEFAULTS_SECTION, "keyring", fallback=True)
        except ValueError:
            raise ConfigError(f"'keyring' must be true or false in {self.path}") from None

    def region(self):
        return self._default("region")

    # -- hosts ---------------------------------------------------------------

    def hosts(self, provider):
        prefix = SECTION_PREFIX[provider]
        hosts = []
        for section in self.parser.sections():
            if not section.startswith(prefix):
                continue
            values = self.parser[section]
            hosts.append(
                Host(
                    provider,
                    section[len(prefix):],
                    values.get("username"),
                    region=values.get("region"),
                    mfa=values.get("mfa"),
                    mfa_provider=values.get("mfa_provider"),
                )
            )
        return hosts

    def find_host(self, provider, app_url=None):
        """Return the host for *app_url*, or the first host of *provider*."""
        hosts = self.hosts(provider)
        if app_url is None:
            return hosts[0] if hosts else None
        wanted = normalize_app_url(app_url)
        return next((h for h in hosts if h.app_url == wanted), None)

    def add_host(self, host):
        if not self.parser.has_section(host.section):
            self.parser.add_section(host.section)
        values = {
            "username": host.username,
            "region": host.region,
            "mfa": host.mfa,
            "mfa_provider": host.mfa_provider,
        }
        for key, value in values.items():
            if value:
                self.parser.set(host.section, key, value)
            else:
                self.parser.remove_option(host.section, key)

    def write(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as fh:
            self.parser.write(fh)
        os.chmod(self.path, 0o600)
