"""Okta session token -> IAM Identity Center role credentials."""

import logging

from okta_broker.aws.sso_login import SsoPortalLogin
from okta_broker.aws.sso_portal import SsoPortal, SsoPortalClient, portal_url, sso_client
from okta_broker.models import Role

log = logging.getLogger(__name__)


class AwsSsoCredentials:
    """Log in to the portal and fetch credentials.

    With *role_arn* only that role is fetched and no listing is made;
    without it every role of every assigned account is returned. The boto3
    ``sso`` client is built for the region of each run unless one is given.
    """

    def __init__(self, client, sso_client=None):
        self.client = client
        self.sso_client = sso_client

    def run(self, app_url, session_token, region, role_arn=None):
        requested = Role.from_arn(role_arn) if role_arn is not None else None

        token = SsoPortalLogin(self.client).run(app_url, session_token, portal_url(region))
        api = SsoPortal(self.sso_client or sso_client(region), sleep=self.client.sleep)
        portal = SsoPortalClient(api)

        roles = [requested] if requested else portal.list_role_arns(token)
        log.debug("Fetching credentials for %d role(s)", len(roles))

        return portal.list_credentials(token, roles)
