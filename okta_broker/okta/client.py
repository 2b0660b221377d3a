"""Entry point for turning Okta credentials into AWS credentials."""

import enum

from okta_broker.aws.sso_credentials import AwsSsoCredentials
from okta_broker.aws.sts import DEFAULT_REGION, AwsCredentials
from okta_broker.http import ApiClient
from okta_broker.okta.authenticator import Authenticator


class SsoProvider(enum.Enum):
    OKTA_AWS = "okta-aws"
    OKTA_AWS_SSO = "okta-aws-sso"


class OktaClient:
    """Authenticates against Okta, then runs one of the AWS exchanges.

    All components share one :class:`ApiClient`, so the cookies Okta sets
    during authentication are sent when the AWS app is opened.
    """

    def __init__(
        self, prompt, signer, client=None, sts_client=None, sso_client=None, region=DEFAULT_REGION
    ):
        self.client = client or ApiClient()
        self.authenticator = Authenticator(self.client, prompt, signer)
        self.aws = AwsCredentials(self.client, sts_client=sts_client, region=region)
        self.aws_sso = AwsSsoCredentials(self.client, sso_client=sso_client)

    def aws_credentials(self, username, password, app_url, role_arn=None, mfa=None, mfa_provider=None):
        session_token = self.authenticator.run(app_url, username, password, mfa, mfa_provider)
        return self.aws.run(app_url, session_token, role_arn)

    def aws_sso_credentials(
        self, username, password, app_url, region, role_arn=None, mfa=None, mfa_provider=None
    ):
        session_token = self.authenticator.run(app_url, username, password, mfa, mfa_provider)
        return self.aws_sso.run(app_url, session_token, region, role_arn)
