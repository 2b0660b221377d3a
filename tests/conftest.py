"""Pytest configuration and fixtures."""

import base64

import pytest

from okta_broker.http import ApiClient
from okta_broker.prompt import OperatorPrompt
from okta_broker.saml import ASSERTION_NS, PROTOCOL_NS
from okta_broker.webauthn import MfaSigner, SignedChallenge

OKTA_URL = "https://example.okta.com"
APP_URL = OKTA_URL + "/home/amazon_aws/0oa1crzseqkrZUctZ357/272"

PRINCIPAL_ARN = "arn:aws:iam::123456789012:saml-provider/Okta"
DEV_ROLE_ARN = "arn:aws:iam::123456789012:role/Dev"
ADMIN_ROLE_ARN = "arn:aws:iam::123456789012:role/Admin"


def saml_xml(role_values, destination="https://signin.aws.amazon.com/saml"):
    values = "".join(
        f"<saml2:AttributeValue>{value}</saml2:AttributeValue>" for value in role_values
    )
    return (
        f'<saml2p:Response xmlns:saml2p="{PROTOCOL_NS}" Destination="{destination}" '
        f'ID="id4711" Version="2.0">'
        f'<saml2:Assertion xmlns:saml2="{ASSERTION_NS}">'
        "<saml2:AttributeStatement>"
        '<saml2:Attribute Name="https://aws.amazon.com/SAML/Attributes/RoleSessionName">'
        "<saml2:AttributeValue>jane.doe@example.com</saml2:AttributeValue>"
        "</saml2:Attribute>"
        f'<saml2:Attribute Name="https://aws.amazon.com/SAML/Attributes/Role">{values}'
        "</saml2:Attribute>"
        "</saml2:AttributeStatement>"
        "</saml2:Assertion>"
        "</saml2p:Response>"
    )


def saml_html(role_values, destination="https://signin.aws.amazon.com/saml"):
    encoded = base64.b64encode(saml_xml(role_values, destination).encode("utf-8")).decode()
    return (
        "<html><body>"
        f'<form id="appForm" method="POST" action="{destination}">'
        f'<input name="SAMLResponse" type="hidden" value="{encoded}"/>'
        '<input name="RelayState" type="hidden" value=""/>'
        "</form></body></html>"
    )


class ScriptedPrompt(OperatorPrompt):
    """Answers every question from a script and records what it was asked."""

    def __init__(self, totp="123456", password="hunter2", choice=0, save_password=False):
        self.totp = totp
        self._password = password
        self.choice = choice
        self.save_password = save_password
        self.offered = []
        self.questions = []
        self.messages = []

    def select_factor(self, factors):
        self.offered.append(list(factors))
        return factors[self.choice]

    def totp_code(self):
        return self.totp

    def password(self):
        return self._password

    def confirm(self, question):
        self.questions.append(question)
        return self.save_password

    def info(self, message):
        self.messages.append(message)


class FakeSigner(MfaSigner):
    def __init__(self):
        self.calls = []

    def sign(self, challenge, host, credential_ids, user_verification=None):
        self.calls.append((challenge, host, list(credential_ids), user_verification))
        return SignedChallenge(
            client_data="Y2xpZW50RGF0YQ==",
            signature_data="c2lnbmF0dXJl",
            authenticator_data="YXV0aERhdGE=",
        )


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)

    @property
    def total(self):
        return sum(self.delays)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def api_client(sleep):
    return ApiClient(sleep=sleep)


@pytest.fixture
def prompt():
    return ScriptedPrompt()


@pytest.fixture
def signer():
    return FakeSigner()
