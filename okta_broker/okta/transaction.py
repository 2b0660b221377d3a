"""Okta authentication transaction objects.

See https://developer.okta.com/docs/reference/api/authn/#transaction-model
for the wire format. Responses are JSON with camelCase keys and HAL style
``_embedded`` and ``_links`` members.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from okta_broker.errors import InvalidMfaSelection


class TransactionStatus(enum.Enum):
    MFA_REQUIRED = "MFA_REQUIRED"
    MFA_CHALLENGE = "MFA_CHALLENGE"
    SUCCESS = "SUCCESS"
    UNIMPLEMENTED = "UNIMPLEMENTED"


class FactorResult(enum.Enum):
    CHALLENGE = "CHALLENGE"
    WAITING = "WAITING"
    REJECTED = "REJECTED"
    TIMEOUT = "TIMEOUT"
    UNIMPLEMENTED = "UNIMPLEMENTED"


class FactorKind(enum.Enum):
    WEBAUTHN = "webauthn"
    TOTP = "token:software:totp"
    PUSH = "push"
    UNIMPLEMENTED = "unimplemented"


class MfaSelection(enum.Enum):
    """MFA kinds an operator can ask for up front."""

    WEBAUTHN = FactorKind.WEBAUTHN
    TOTP = FactorKind.TOTP
    PUSH = FactorKind.PUSH

    @classmethod
    def from_string(cls, value):
        names = {
            "webauthn": cls.WEBAUTHN,
            "totp": cls.TOTP,
            "push": cls.PUSH,
            "oktapush": cls.PUSH,
        }
        try:
            return names[value.lower()]
        except KeyError:
            raise InvalidMfaSelection(
                f"invalid MFA selection {value!r} (expected one of: {', '.join(names)})"
            ) from None


def _enum_value(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return enum_cls.UNIMPLEMENTED


def _link(links, name):
    """Return the href of link *name*; list valued links use their first entry."""
    link = (links or {}).get(name)
    if isinstance(link, list):
        link = link[0] if link else None
    if isinstance(link, dict):
        return link.get("href")
    return None


@dataclass(frozen=True)
class Factor:
    """One MFA option offered by the IdP.

    The variants differ only in which fields are meaningful, so they share a
    single type and the accessors below answer per kind.
    """

    kind: FactorKind
    factor_type: str
    provider: Optional[str] = None
    vendor_name: Optional[str] = None
    profile: Optional[dict] = None
    links: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data):
        factor_type = data.get("factorType", "")
        return cls(
            kind=_enum_value(FactorKind, factor_type),
            factor_type=factor_type,
            provider=data.get("provider"),
            vendor_name=data.get("vendorName"),
            profile=data.get("profile"),
            links=data.get("_links") or {},
        )

    def verification_url(self):
        if self.kind == FactorKind.WEBAUTHN:
            return _link(self.links, "verify") or _link(self.links, "next")
        if self.kind in (FactorKind.TOTP, FactorKind.PUSH):
            return _link(self.links, "verify")
        return None

    def credential_id(self):
        if self.kind == FactorKind.UNIMPLEMENTED or not self.profile:
            return None
        return self.profile.get("credentialId")

    def provider_name(self):
        if self.kind in (FactorKind.TOTP, FactorKind.PUSH):
            return self.provider
        return None

    def human_name(self):
        if self.kind == FactorKind.PUSH:
            return "Okta Push"
        if self.kind == FactorKind.TOTP:
            return f"TOTP ({self.provider})"
        if self.kind == FactorKind.WEBAUTHN:
            name = (self.profile or {}).get("name")
            return f"WebAuthn ({name})" if name else "WebAuthn (U2F)"
        return f"Unimplemented ({self.factor_type})"


@dataclass(frozen=True)
class Challenge:
    challenge: str
    user_verification: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """One response of the authentication state machine."""

    status: TransactionStatus
    raw_status: Optional[str] = None
    state_token: Optional[str] = None
    session_token: Optional[str] = None
    factor_result: Optional[FactorResult] = None
    factors: tuple = ()
    challenge: Optional[Challenge] = None
    next_url: Optional[str] = None

    @classmethod
    def from_api(cls, data):
        embedded = data.get("_embedded") or {}

        # the generic WebAuthn entry first, then the enrolled factors
        factors = [Factor.from_api(f) for f in embedded.get("factorTypes") or []]
        factors.extend(
            factor
            for factor in (Factor.from_api(f) for f in embedded.get("factors") or [])
            if factor.kind != FactorKind.UNIMPLEMENTED
        )

        challenge = None
        if embedded.get("challenge"):
            challenge = Challenge(
                challenge=embedded["challenge"].get("challenge"),
                user_verification=embedded["challenge"].get("userVerification"),
            )

        factor_result = data.get("factorResult")
        return cls(
            status=_enum_value(TransactionStatus, data.get("status")),
            raw_status=data.get("status"),
            state_token=data.get("stateToken"),
            session_token=data.get("sessionToken"),
            factor_result=_enum_value(FactorResult, factor_result) if factor_result else None,
            factors=tuple(factors),
            challenge=challenge,
            next_url=_link(data.get("_links"), "next"),
        )


def error_summary(data):
    """Format an Okta error object the way it is reported to the operator."""
    return f"okta error code {data.get('errorCode')} - {data.get('errorSummary')}"
