"""Passwords and cached credentials in the OS keyring."""

import json
import logging
from urllib.parse import urlparse

import keyring
from keyring.errors import KeyringError

from okta_broker.models import Credential

log = logging.getLogger(__name__)

SERVICE = "okta-broker"


class SecretStore:
    """get/set a secret by service and account; a disabled store keeps nothing."""

    def __init__(self, enabled=True, backend=keyring):
        self.enabled = enabled
        self.backend = backend

    def get(self, service, account):
        if not self.enabled:
            return None
        try:
            return self.backend.get_password(service, account)
        except KeyringError as exc:
            log.warning("Could not read %s from the keyring: %s", account, exc)
            return None

    def set(self, service, account, secret):
        if not self.enabled:
            return
        try:
            self.backend.set_password(service, account, secret)
        except KeyringError as exc:
            log.warning("Could not save %s to the keyring: %s", account, exc)


def password_service(app_url):
    return f"{SERVICE} -- {urlparse(app_url).hostname}"


def get_password(store, prompt, app_url, username, with_password=False):
    """Return the Okta password, from the keyring unless *with_password* forces a prompt.

    A freshly typed password is offered for saving when the keyring is enabled.
    """
    service = password_service(app_url)
    if not with_password:
        password = store.get(service, username)
        if password:
            log.debug("Using stored password for %s", username)
            return password

    password = prompt.password()
    if store.enabled and prompt.confirm("Save password?"):
        store.set(service, username, password)
    return password


def get_cached_credential(store, role_arn, now=None):
    """Return the cached credential for *role_arn* unless it is missing or expired."""
    data = store.get(SERVICE, role_arn)
    if not data:
        return None
    try:
        credential = Credential.from_dict(json.loads(data))
        expired = credential.is_expired(now)
    except (ValueError, KeyError, TypeError) as exc:
        log.warning("Ignoring unreadable cached credential for %s: %s", role_arn, exc)
        return None
    if expired:
        log.debug("Cached credential for %s expired at %s", role_arn, credential.expiration)
        return None
    return credential


def set_cached_credential(store, role_arn, credential):
    store.set(SERVICE, role_arn, json.dumps(credential.to_dict()))
