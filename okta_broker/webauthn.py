"""WebAuthn signing with a FIDO2 security key.

Okta's WebAuthn challenge is answered by asking every attached HID
authenticator for an assertion over the challenge. The first key that
answers wins.
"""

import base64
import logging
import threading
from dataclasses import dataclass

from fido2.client import Fido2Client, UserInteraction
from fido2.hid import CtapHidDevice
from fido2.utils import websafe_decode
from fido2.webauthn import (
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialType,
    UserVerificationRequirement,
)

from okta_broker.errors import SignerError

log = logging.getLogger(__name__)

SIGN_TIMEOUT = 15  # seconds per authenticator


@dataclass(frozen=True)
class SignedChallenge:
    client_data: str
    signature_data: str
    authenticator_data: str


class MfaSigner:
    """Interface of the signing collaborator."""

    def sign(self, challenge, host, credential_ids, user_verification=None):
        """Return a :class:`SignedChallenge` for *challenge* bound to *host*.

        *user_verification* is the relying party's requirement as sent by the
        IdP (``required``, ``preferred`` or ``discouraged``), if any.
        """
        raise NotImplementedError


def user_verification_requirement(value):
    """Map the IdP's ``userVerification`` to fido2; unknown or missing means discouraged."""
    try:
        return UserVerificationRequirement(value)
    except ValueError:
        log.debug("Unknown userVerification %r, using discouraged", value)
        return UserVerificationRequirement.DISCOURAGED


class _PromptInteraction(UserInteraction):
    def __init__(self, prompt):
        self.prompt = prompt

    def prompt_up(self):
        self.prompt.info("Touch your security key to continue...")

    def request_pin(self, permissions, rp_id):
        raise SignerError("security keys requiring a PIN are not supported")

    def request_uv(self, permissions, rp_id):
        return True


class Fido2Signer(MfaSigner):
    def __init__(self, prompt, timeout=SIGN_TIMEOUT, list_devices=CtapHidDevice.list_devices):
        self.prompt = prompt
        self.timeout = timeout
        self.list_devices = list_devices

    def sign(self, challenge, host, credential_ids, user_verification=None):
        devices = list(self.list_devices())
        if not devices:
            raise SignerError("no FIDO2 security key found")

        options = PublicKeyCredentialRequestOptions(
            challenge=websafe_decode(challenge),
            rp_id=host,
            allow_credentials=[
                PublicKeyCredentialDescriptor(
                    type=PublicKeyCredentialType.PUBLIC_KEY, id=websafe_decode(cid)
                )
                for cid in credential_ids
            ],
            user_verification=user_verification_requirement(user_verification),
        )
        origin = f"https://{host}"

        last_error = None
        for device in devices:
            client = Fido2Client(device, origin, user_interaction=_PromptInteraction(self.prompt))
            cancel = threading.Event()
            timer = threading.Timer(self.timeout, cancel.set)
            timer.start()
            try:
                selection = client.get_assertion(options, event=cancel)
            except Exception as exc:  # any device failure moves on to the next key
                log.debug("Authenticator %s did not sign: %s", device, exc)
                last_error = exc
                continue
            finally:
                timer.cancel()

            response = selection.get_response(0)
            return SignedChallenge(
                client_data=_b64(response.client_data),
                signature_data=_b64(response.signature),
                authenticator_data=_b64(response.authenticator_data),
            )

        raise SignerError(f"no security key signed the challenge: {last_error}")


def _b64(data):
    return base64.b64encode(bytes(data)).decode("ascii")
