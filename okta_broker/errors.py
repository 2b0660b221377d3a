"""Exceptions raised by okta-broker.

Every error the pipeline produces derives from :class:`OktaBrokerError` so the
command line can report a single descriptive message and exit.
"""


class OktaBrokerError(Exception):
    """Base class for all okta-broker errors."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(OktaBrokerError):
    """A network call failed before a usable response was received."""


class HttpStatusError(TransportError):
    """The server answered with a status other than the one expected."""

    def __init__(self, url, status_code, body=""):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"unexpected HTTP {status_code} from {url}")


# ---------------------------------------------------------------------------
# Identity provider
# ---------------------------------------------------------------------------


class IdpRejected(OktaBrokerError):
    """The IdP refused the request (HTTP 401 or 429)."""

    def __init__(self, summary):
        self.summary = summary
        super().__init__(summary)


class ProtocolViolation(OktaBrokerError):
    """A well-formed response lacks a field the protocol requires."""


class SessionTokenMissing(ProtocolViolation):
    """The transaction reached SUCCESS without a session token."""


class UnimplementedState(OktaBrokerError):
    """The IdP returned a status or factor result this client does not handle."""


# ---------------------------------------------------------------------------
# MFA
# ---------------------------------------------------------------------------


class InvalidMfaSelection(OktaBrokerError):
    """The requested MFA kind is not one of the supported names."""


class FactorNotFound(OktaBrokerError):
    """No MFA factor matches the requested kind and provider."""


class VerificationUrlMissing(OktaBrokerError):
    """The selected factor has no verification link."""


class InsecureOrigin(OktaBrokerError):
    """WebAuthn challenges are only signed for https origins."""


class ChallengeRejected(OktaBrokerError):
    """The operator rejected the MFA challenge."""


class ChallengeTimeout(OktaBrokerError):
    """The MFA challenge expired before it was answered."""


class SignerError(OktaBrokerError):
    """No security key produced a signature for the challenge."""


# ---------------------------------------------------------------------------
# SAML assertion
# ---------------------------------------------------------------------------


class SamlError(OktaBrokerError):
    """Base class for assertion parsing failures."""


class AssertionNotFound(SamlError):
    """The HTML page has no SAMLResponse form field."""


class AssertionMalformed(SamlError):
    """The SAMLResponse value is not base64 encoded XML."""


class RoleAttributeMalformed(SamlError):
    """A Role attribute value is not a ``principal,role`` pair."""


# ---------------------------------------------------------------------------
# AWS
# ---------------------------------------------------------------------------


class RoleNotFound(OktaBrokerError):
    """The requested role ARN is not granted by the assertion."""


class ArnMalformed(OktaBrokerError):
    """A string could not be parsed as an IAM role ARN."""


class MissingField(OktaBrokerError):
    """A step of the SSO portal token exchange lacks a required field."""

    def __init__(self, phase, field):
        self.phase = phase
        self.field = field
        super().__init__(f"{phase}: missing {field}")


class AwsApiError(OktaBrokerError):
    """An AWS API call made through boto3 failed."""
