"""Drives the Okta authentication state machine up to a session token.

See https://developer.okta.com/docs/reference/api/authn/#transaction-state
for how Okta moves a transaction from primary authentication through MFA.
"""

import logging
import time
from urllib.parse import urlparse

from okta_broker.errors import (
    FactorNotFound,
    HttpStatusError,
    IdpRejected,
    InsecureOrigin,
    ProtocolViolation,
    SessionTokenMissing,
    VerificationUrlMissing,
)
from okta_broker.http import decode_json
from okta_broker.okta import state_machine
from okta_broker.okta.state_machine import StateKind
from okta_broker.okta.transaction import (
    FactorKind,
    FactorResult,
    Transaction,
    error_summary,
)

log = logging.getLogger(__name__)

POLL_INTERVAL = 1  # seconds between MFA challenge polls


def select_factor(factors, mfa, mfa_provider, prompt):
    """Pick the MFA factor to verify with.

    The WebAuthn entry without a profile is a placeholder for "any security
    key", not an enrolled credential, and is never selected. With *mfa* set
    the first factor of that kind wins (TOTP factors must also match
    *mfa_provider*, case-insensitively, when one is given); otherwise the
    operator chooses.
    """
    candidates = [
        f for f in factors if not (f.kind == FactorKind.WEBAUTHN and f.profile is None)
    ]

    if mfa is not None:
        kind = mfa.value
        matches = [f for f in candidates if f.kind == kind]
        if kind == FactorKind.TOTP and mfa_provider:
            matches = [
                f for f in matches
                if (f.provider_name() or "").lower() == mfa_provider.lower()
            ]
        if not matches:
            raise FactorNotFound(f"MFA factor {kind.value!r} not found")
        return matches[0]

    if not candidates:
        raise FactorNotFound("no usable MFA factor offered")
    if len(candidates) == 1:
        return candidates[0]
    return prompt.select_factor(candidates)


def _authn_url(app_url):
    parsed = urlparse(app_url)
    return f"{parsed.scheme}://{parsed.netloc}/api/v1/authn"


class Authenticator:
    """Runs primary authentication and MFA for one user.

    *signer* answers WebAuthn challenges, *prompt* handles factor choice and
    TOTP codes, *sleep* paces MFA polling.
    """

    def __init__(self, client, prompt, signer, sleep=time.sleep):
        self.client = client
        self.prompt = prompt
        self.signer = signer
        self.sleep = sleep

    def run(self, app_url, username, password, mfa=None, mfa_provider=None):
        """Authenticate and return the session token."""
        state = state_machine.INITIAL
        transaction = self.authorize(app_url, username, password)
        state = state_machine.step(state, transaction)

        while True:
            log.debug("Authentication state: %s", state.kind.value)
            if state.kind == StateKind.FAILED:
                raise state.error
            if state.kind == StateKind.SUCCESS:
                if not state.transaction.session_token:
                    raise SessionTokenMissing("required key 'sessionToken' not in response")
                return state.transaction.session_token

            if state.kind == StateKind.MFA_REQUIRED:
                transaction = self.mfa_required(state.transaction, mfa, mfa_provider)
            elif state.kind == StateKind.MFA_CHALLENGE:
                transaction = self.mfa_challenge(state.transaction, app_url)
            state = state_machine.step(state, transaction)

    def authorize(self, app_url, username, password):
        """Primary authentication.

        https://developer.okta.com/docs/reference/api/authn/#primary-authentication
        """
        self.prompt.info(f"Authenticating to {urlparse(app_url).netloc} as {username}...")
        transaction = self._post(_authn_url(app_url), {"username": username, "password": password})
        # users without MFA are handed a session token straight away
        if not transaction.state_token and not transaction.session_token:
            raise ProtocolViolation("required key 'stateToken' not in response")
        return transaction

    def mfa_required(self, transaction, mfa=None, mfa_provider=None):
        """Choose a factor and start its verification.

        https://developer.okta.com/docs/reference/api/authn/#verify-factor
        """
        state_token = self._state_token(transaction)
        factor = select_factor(transaction.factors, mfa, mfa_provider, self.prompt)
        log.debug("Verifying with factor %s", factor.human_name())

        url = factor.verification_url()
        if not url:
            raise VerificationUrlMissing(f"{factor.human_name()} has no verification url")

        payload = {"stateToken": state_token}
        if factor.kind == FactorKind.TOTP:
            payload["passCode"] = self.prompt.totp_code()
        elif factor.kind == FactorKind.PUSH:
            self.prompt.info("Sending push notification to Okta Verify... please approve it.")
        return self._post(url, payload)

    def mfa_challenge(self, transaction, app_url):
        """Answer or poll an outstanding MFA challenge.

        Rejected and timed out challenges never get here, the state machine
        fails the transaction first.
        """
        result = transaction.factor_result
        if result is None:
            raise ProtocolViolation("required key 'factorResult' not in response")

        if result == FactorResult.CHALLENGE:
            return self._sign_challenge(transaction, app_url)
        if result == FactorResult.WAITING:
            return self._poll(transaction)
        raise ProtocolViolation(f"cannot answer MFA challenge with factor result {result.value!r}")

    def _sign_challenge(self, transaction, app_url):
        state_token = self._state_token(transaction)
        if not transaction.challenge or not transaction.challenge.challenge:
            raise ProtocolViolation("required key 'challenge' not in response")
        next_url = self._next_url(transaction)

        credential_ids = [
            f.credential_id() for f in transaction.factors if f.credential_id()
        ]

        origin = urlparse(app_url)
        if origin.scheme != "https":
            raise InsecureOrigin(f"WebAuthn requests must use https, got {app_url!r}")
        if not origin.hostname:
            raise InsecureOrigin(f"could not get host from {app_url!r}")

        signed = self.signer.sign(
            transaction.challenge.challenge,
            origin.hostname,
            credential_ids,
            user_verification=transaction.challenge.user_verification,
        )
        return self._post(
            next_url,
            {
                "stateToken": state_token,
                "clientData": signed.client_data,
                "signatureData": signed.signature_data,
                "authenticatorData": signed.authenticator_data,
            },
        )

    def _poll(self, transaction):
        """https://developer.okta.com/docs/reference/api/authn/#verify-push-factor"""
        state_token = self._state_token(transaction)
        next_url = self._next_url(transaction)
        self.sleep(POLL_INTERVAL)
        return self._post(next_url, {"stateToken": state_token})

    # -- helpers -------------------------------------------------------------

    def _post(self, url, payload):
        response = self.client.post_json(url, payload)
        if response.status_code in (401, 429):
            try:
                summary = error_summary(response.json())
            except ValueError:
                summary = f"HTTP {response.status_code} from {url}"
            raise IdpRejected(summary)
        if response.status_code != 200:
            raise HttpStatusError(url, response.status_code, response.text)

        data = decode_json(response, url)
        transaction = Transaction.from_api(data)
        log.debug("Transaction status %s", transaction.raw_status)
        return transaction

    @staticmethod
    def _state_token(transaction):
        if not transaction.state_token:
            raise ProtocolViolation("required key 'stateToken' not in response")
        return transaction.state_token

    @staticmethod
    def _next_url(transaction):
        if not transaction.next_url:
            raise ProtocolViolation("required key '_links.next' not in response")
        return transaction.next_url
