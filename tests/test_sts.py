"""Tests for the direct STS exchange."""

import datetime
from unittest.mock import MagicMock

import pytest
import responses
from botocore.exceptions import ClientError
from responses import matchers

from okta_broker.aws.sts import AwsCredentials, select_roles
from okta_broker.errors import AssertionNotFound, AwsApiError, HttpStatusError, RoleNotFound
from okta_broker.models import SamlRole

from .conftest import ADMIN_ROLE_ARN, APP_URL, DEV_ROLE_ARN, PRINCIPAL_ARN, saml_html

EXPIRATION = datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc)


def sts_response(RoleArn, **kwargs):
    name = RoleArn.rsplit("/", 1)[-1]
    return {
        "Credentials": {
            "AccessKeyId": f"ASIA{name.upper()}",
            "SecretAccessKey": f"secret-{name}",
            "SessionToken": f"token-{name}",
            "Expiration": EXPIRATION,
        }
    }


@pytest.fixture
def sts_client():
    client = MagicMock()
    client.assume_role_with_saml.side_effect = sts_response
    return client


@pytest.fixture
def aws(api_client, sts_client):
    return AwsCredentials(api_client, sts_client=sts_client)


def add_app_page(roles=(DEV_ROLE_ARN, ADMIN_ROLE_ARN)):
    responses.add(
        responses.GET,
        APP_URL,
        body=saml_html([f"{PRINCIPAL_ARN},{role}" for role in roles]),
        content_type="text/html",
        match=[matchers.query_param_matcher({"sessionToken": "T"})],
    )


@responses.activate
def test_one_credential_per_role(aws, sts_client):
    add_app_page()

    credentials = aws.run(APP_URL, "T")

    assert [c.role_arn for c in credentials] == [DEV_ROLE_ARN, ADMIN_ROLE_ARN]
    assert credentials[0].access_key_id == "ASIADEV"
    assert credentials[1].session_token == "token-Admin"
    assert credentials[0].expiration == "2030-01-01T00:00:00+00:00"
    assert sts_client.assume_role_with_saml.call_count == 2


@responses.activate
def test_assertion_sent_still_encoded(aws, sts_client):
    add_app_page(roles=[DEV_ROLE_ARN])

    aws.run(APP_URL, "T")

    kwargs = sts_client.assume_role_with_saml.call_args.kwargs
    assert kwargs["RoleArn"] == DEV_ROLE_ARN
    assert kwargs["PrincipalArn"] == PRINCIPAL_ARN
    assert kwargs["SAMLAssertion"] in responses.calls[0].response.text
    assert kwargs["DurationSeconds"] == 3600


@responses.activate
def test_role_filter(aws, sts_client):
    add_app_page()

    credentials = aws.run(APP_URL, "T", role_arn=ADMIN_ROLE_ARN)

    assert [c.role_arn for c in credentials] == [ADMIN_ROLE_ARN]
    assert sts_client.assume_role_with_saml.call_count == 1


@responses.activate
def test_unknown_role(aws, sts_client):
    add_app_page()

    with pytest.raises(RoleNotFound):
        aws.run(APP_URL, "T", role_arn="arn:aws:iam::123456789012:role/Nope")

    sts_client.assume_role_with_saml.assert_not_called()


@responses.activate
def test_sts_failure(aws, sts_client):
    add_app_page()
    sts_client.assume_role_with_saml.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Not authorized"}},
        "AssumeRoleWithSAML",
    )

    with pytest.raises(AwsApiError):
        aws.run(APP_URL, "T")


@responses.activate
def test_app_page_without_assertion(aws):
    responses.add(responses.GET, APP_URL, body="<html><body>Sign in</body></html>")

    with pytest.raises(AssertionNotFound):
        aws.run(APP_URL, "T")


@responses.activate
def test_app_page_error(aws):
    responses.add(responses.GET, APP_URL, body="forbidden", status=403)

    with pytest.raises(HttpStatusError):
        aws.run(APP_URL, "T")


def test_select_roles():
    roles = [SamlRole("P1", "R1"), SamlRole("P2", "R2")]

    assert select_roles(roles) == roles
    assert select_roles(roles, "R2") == [SamlRole("P2", "R2")]
    with pytest.raises(RoleNotFound, match="could not find role_arn R3"):
        select_roles(roles, "R3")
