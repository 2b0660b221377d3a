"""Direct role assumption: Okta SAML assertion -> STS AssumeRoleWithSAML."""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from okta_broker.errors import AwsApiError, RoleNotFound
from okta_broker.fanout import map_ordered
from okta_broker.http import AcceptType, ensure_ok
from okta_broker.models import Credential
from okta_broker.saml import extract_roles, parse_assertion

log = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
SESSION_DURATION = 3600  # 1 hour


def select_roles(roles, role_arn=None):
    """Return *roles*, or only the one whose role ARN equals *role_arn*."""
    if role_arn is None:
        return list(roles)
    for role in roles:
        if role.role_arn == role_arn:
            return [role]
    raise RoleNotFound(f"could not find role_arn {role_arn}")


class AwsCredentials:
    """Fetches the assertion from the Okta AWS app and exchanges it with STS.

    One AssumeRoleWithSAML call is made per granted role, concurrently.
    """

    def __init__(self, client, sts_client=None, region=DEFAULT_REGION):
        self.client = client
        self.sts_client = sts_client or boto3.client("sts", region_name=region)

    def run(self, app_url, session_token, role_arn=None):
        response = self.client.get(
            app_url, params={"sessionToken": session_token}, accept=AcceptType.HTML
        )
        ensure_ok(response, app_url)

        assertion = parse_assertion(response.text)
        roles = select_roles(extract_roles(assertion), role_arn)
        log.debug("Assuming %d role(s) with STS", len(roles))

        return map_ordered(lambda role: self.assume_role(assertion.raw, role), roles)

    def assume_role(self, saml_assertion, role):
        """Call STS AssumeRoleWithSAML for one ``principal,role`` pair."""
        try:
            response = self.sts_client.assume_role_with_saml(
                RoleArn=role.role_arn,
                PrincipalArn=role.principal_arn,
                SAMLAssertion=saml_assertion,
                DurationSeconds=SESSION_DURATION,
            )
        except (BotoCoreError, ClientError) as exc:
            raise AwsApiError(f"Failed to assume role {role.role_arn}: {exc}") from exc

        creds = response["Credentials"]
        return Credential(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            role_arn=role.role_arn,
            expiration=creds["Expiration"].isoformat(),
        )
